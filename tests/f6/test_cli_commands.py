"""Tests for the book CLI commands (F6)."""

from typer.testing import CliRunner

from tutorial.cli.commands import app


runner = CliRunner()


class TestChaptersCommand:
    """Tests for `book chapters`."""

    def test_lists_chapters(self, sample_book):
        result = runner.invoke(app, ["chapters", "--book-dir", str(sample_book)])
        assert result.exit_code == 0, f"Failed with: {result.output}"
        assert "chapter1" in result.output
        assert "The boxes of earth" in result.output
        assert "3 chapters" in result.output

    def test_missing_book_dir(self, tmp_path):
        result = runner.invoke(app, ["chapters", "-b", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "✗" in result.output


class TestShowCommand:
    """Tests for `book show`."""

    def test_show_chapter(self, sample_book):
        result = runner.invoke(app, ["show", "chapter2", "-b", str(sample_book)])
        assert result.exit_code == 0, f"Failed with: {result.output}"
        assert "Chapter 2 - The boxes of earth" in result.output
        assert "type BoxOfEarth" in result.output
        assert "Next:" in result.output

    def test_unknown_chapter_lists_available(self, sample_book):
        result = runner.invoke(app, ["show", "chapter99", "-b", str(sample_book)])
        assert result.exit_code == 1
        assert "Available chapters" in result.output

    def test_ambiguous_prefix(self, sample_book):
        result = runner.invoke(app, ["show", "chapter", "-b", str(sample_book)])
        assert result.exit_code == 1


class TestRenderAndBuild:
    """Tests for `book render` and `book build`."""

    def test_render_to_stdout(self, sample_book):
        result = runner.invoke(app, ["render", "chapter1", "-b", str(sample_book)])
        assert result.exit_code == 0, f"Failed with: {result.output}"
        assert "<!DOCTYPE html>" in result.output
        assert "chapter2.html" in result.output

    def test_render_stdout_is_only_html(self, bundled_book_dir):
        """Log lines never end up in the HTML written to stdout."""
        result = runner.invoke(app, ["render", "chapter14", "-b", str(bundled_book_dir)])
        assert result.exit_code == 0, f"Failed with: {result.output}"
        assert result.stdout.startswith("<!DOCTYPE html>")
        assert "loading_app_config" not in result.stdout
        assert "renderer.page" not in result.stdout

    def test_render_to_file(self, sample_book, tmp_path):
        output = tmp_path / "out" / "chapter2.html"
        result = runner.invoke(
            app, ["render", "chapter2", "-o", str(output), "-b", str(sample_book)]
        )
        assert result.exit_code == 0, f"Failed with: {result.output}"
        assert output.exists()
        assert 'class="quiz"' in output.read_text(encoding="utf-8")
        assert "Rendered chapter2" in result.output

    def test_render_malformed_quiz(self, sample_book, make_chapter):
        make_chapter(sample_book, "chapter4", "# Chapter 4 - Broken\n\n<!-- quiz-start -->\n1. Q\n")
        result = runner.invoke(app, ["render", "chapter4", "-b", str(sample_book)])
        assert result.exit_code == 1

    def test_build_site(self, sample_book, tmp_path):
        out_dir = tmp_path / "site"
        result = runner.invoke(app, ["build", "-o", str(out_dir), "-b", str(sample_book)])
        assert result.exit_code == 0, f"Failed with: {result.output}"
        assert (out_dir / "index.html").exists()
        assert (out_dir / "chapter2" / "answers.html").exists()
        assert "3 chapters, 6 files" in result.output


class TestQuizCommand:
    """Tests for `book quiz`."""

    def test_shows_questions(self, sample_book):
        result = runner.invoke(app, ["quiz", "chapter2", "-b", str(sample_book)])
        assert result.exit_code == 0, f"Failed with: {result.output}"
        assert "Practice time - Chapter 2" in result.output
        assert "1. How many boxes are there?" in result.output
        assert "SELECT BoxOfEarth;" in result.output
        assert "answers.md" in result.output

    def test_chapter_without_quiz(self, sample_book):
        result = runner.invoke(app, ["quiz", "chapter1", "-b", str(sample_book)])
        assert result.exit_code == 1
        assert "has no quiz" in result.output


class TestCheckAndTags:
    """Tests for `book check` and `book tags`."""

    def test_check_bundled_book(self, bundled_book_dir):
        result = runner.invoke(app, ["check", "-b", str(bundled_book_dir)])
        assert result.exit_code == 0, f"Failed with: {result.output}"
        assert "✓ chapter14" in result.output

    def test_check_reports_issues(self, sample_book, make_chapter):
        make_chapter(sample_book, "chapter4", "# Chapter 4 - Broken\n\n<!-- quiz-start -->\n1. Q\n")
        result = runner.invoke(app, ["check", "-b", str(sample_book)])
        assert result.exit_code == 1
        assert "quiz_malformed" in result.output

    def test_check_single_chapter(self, sample_book):
        result = runner.invoke(app, ["check", "chapter2", "-b", str(sample_book)])
        assert result.exit_code == 0
        assert "chapter1" not in result.output

    def test_check_malformed_document(self, sample_book, make_chapter):
        make_chapter(sample_book, "chapter4", "# Chapter 4 - Broken\n\n```sdl\ntype A;\n")
        result = runner.invoke(app, ["check", "-b", str(sample_book)])
        assert result.exit_code == 1
        assert "unterminated_fence (line 3)" in result.output
        # The healthy chapters are still reported
        assert "✓ chapter1" in result.output
        assert "✓ chapter2" in result.output

    def test_check_single_broken_chapter(self, sample_book, make_chapter):
        make_chapter(sample_book, "chapter4", "# Chapter 4 - Broken\n\n```sdl\ntype A;\n")
        result = runner.invoke(app, ["check", "chapter4", "-b", str(sample_book)])
        assert result.exit_code == 1
        assert "unterminated_fence" in result.output
        assert "chapter1" not in result.output

    def test_check_unknown_chapter(self, sample_book):
        result = runner.invoke(app, ["check", "chapter99", "-b", str(sample_book)])
        assert result.exit_code == 1

    def test_tags(self, sample_book):
        result = runner.invoke(app, ["tags", "-b", str(sample_book)])
        assert result.exit_code == 0
        assert "$ Parameters: chapter2" in result.output
        assert "Introspection: chapter1" in result.output
