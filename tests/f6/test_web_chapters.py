"""Tests for chapter and tag endpoints (F6)."""

import pytest
from fastapi.testclient import TestClient

from tutorial.web.api import create_app


@pytest.fixture
def client(sample_book):
    """Create test client over the sample book."""
    app = create_app(book_dir=sample_book)
    return TestClient(app)


class TestListChapters:
    """Tests for GET /api/chapters."""

    def test_list_in_order(self, client):
        response = client.get("/api/chapters")
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 3
        assert [c["id"] for c in data["chapters"]] == ["chapter1", "chapter2", "chapter3"]
        assert data["chapters"][1]["has_quiz"] is True

    def test_missing_book_dir(self, tmp_path):
        client = TestClient(create_app(book_dir=tmp_path / "missing"))
        response = client.get("/api/chapters")
        assert response.status_code == 503


class TestGetChapter:
    """Tests for GET /api/chapters/{id}."""

    def test_chapter_detail(self, client):
        data = client.get("/api/chapters/chapter2").json()
        assert data["title"] == "The boxes of earth"
        assert data["tags"] == ["Constraint Delegation", "$ Parameters"]
        assert data["previous_id"] == "chapter1"
        assert data["next_id"] == "chapter3"
        assert data["up_next"] == "The hunt continues."
        assert data["has_answers"] is True
        code = [b for b in data["blocks"] if b["kind"] == "code"]
        assert [b["language"] for b in code] == ["sdl", "edgeql-repl", "plain", "edgeql"]

    def test_link_roles(self, client):
        data = client.get("/api/chapters/chapter2").json()
        roles = {ln["target"]: ln["role"] for ln in data["links"]}
        assert roles["answers.md"] == "answers"
        assert roles["code.md"] == "code_so_far"

    def test_not_found(self, client):
        response = client.get("/api/chapters/chapter99")
        assert response.status_code == 404

    def test_ambiguous(self, client):
        response = client.get("/api/chapters/chapter")
        assert response.status_code == 409


class TestChapterPageAndQuiz:
    """Tests for the rendered page and quiz endpoints."""

    def test_page_is_html(self, client):
        response = client.get("/api/chapters/chapter2/page")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert 'class="quiz"' in response.text
        assert "chapter2/answers.html" in response.text

    def test_quiz(self, client):
        data = client.get("/api/chapters/chapter2/quiz").json()
        assert [q["number"] for q in data["questions"]] == [1, 2]
        assert data["questions"][1]["code"] == ["SELECT BoxOfEarth;"]
        assert data["answers_url"] == "answers.md"

    def test_no_quiz(self, client):
        response = client.get("/api/chapters/chapter1/quiz")
        assert response.status_code == 404
        assert "has no quiz" in response.json()["detail"]

    def test_malformed_quiz(self, sample_book, make_chapter):
        make_chapter(sample_book, "chapter4", "# Chapter 4 - Broken\n\n<!-- quiz-start -->\n1. Q\n")
        client = TestClient(create_app(book_dir=sample_book))
        assert client.get("/api/chapters/chapter4/quiz").status_code == 422
        assert client.get("/api/chapters/chapter4/page").status_code == 422


class TestTags:
    """Tests for GET /api/tags."""

    def test_tag_index(self, client):
        data = client.get("/api/tags").json()
        assert data["count"] == 3
        assert data["tags"]["Introspection"] == ["chapter1"]
