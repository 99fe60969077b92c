"""Tests for the medvocab command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from medvocab import __version__
from medvocab.cli import app
from medvocab.logging import LogConfig, configure_logging
from medvocab.vocabulary.compiler import compile_directory
from medvocab.vocabulary.terms import bundled_sources_dir


runner = CliRunner()


@pytest.fixture(autouse=True)
def medvocab_home(tmp_path, monkeypatch):
    """Point the config directory at a temporary location."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("MEDVOCAB_HOME", str(home))
    yield home
    configure_logging(LogConfig())


@pytest.fixture
def index(medvocab_home):
    """Compile the bundled vocabulary into the default index location."""
    path = medvocab_home / "vocabulary.mvix"
    compile_directory(bundled_sources_dir(), path)
    return path


class TestVersion:
    """Tests for the --version option."""

    def test_version(self):
        """Test the version is printed."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"medvocab version {__version__}" in result.output


class TestCompileCommand:
    """Tests for 'medvocab compile'."""

    def test_compile_bundled(self, tmp_path):
        """Test compiling the bundled sources."""
        output = tmp_path / "out.mvix"

        result = runner.invoke(app, ["compile", str(output)])

        assert result.exit_code == 0
        assert output.exists()
        assert "Wrote" in result.output
        assert "medication-generic" in result.output

    def test_compile_reports_missing_sources(self, tmp_path):
        """Test missing category files are listed."""
        sources = tmp_path / "sources"
        sources.mkdir()
        (sources / "condition.txt").write_text("hypertension\n", encoding="utf-8")

        result = runner.invoke(
            app, ["compile", str(tmp_path / "out.mvix"), "--sources", str(sources)]
        )

        assert result.exit_code == 0
        assert "source file missing: medication_generic.txt" in result.output

    def test_compile_empty_vocabulary(self, tmp_path):
        """Test an empty vocabulary is called out."""
        sources = tmp_path / "empty"
        sources.mkdir()

        result = runner.invoke(
            app, ["compile", str(tmp_path / "out.mvix"), "--sources", str(sources)]
        )

        assert result.exit_code == 0
        assert "Vocabulary is empty" in result.output

    def test_compile_unknown_scheme(self, tmp_path):
        """Test an unknown phonetic scheme is rejected."""
        result = runner.invoke(
            app, ["compile", str(tmp_path / "out.mvix"), "--scheme", "nysiis"]
        )

        assert result.exit_code == 1
        assert "Unknown phonetic scheme" in result.output

    def test_compile_verbose(self, tmp_path):
        """Test the global verbosity flag is accepted."""
        result = runner.invoke(app, ["--verbose", "compile", str(tmp_path / "out.mvix")])
        assert result.exit_code == 0

    def test_compile_unwritable_output(self, tmp_path):
        """Test a write failure is reported instead of a traceback."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        result = runner.invoke(app, ["compile", str(blocker / "out.mvix")])

        assert result.exit_code == 1
        assert "[resource]" in result.output
        assert "Cannot write vocabulary index" in result.output


class TestCorrectCommand:
    """Tests for 'medvocab correct'."""

    def test_correct_argument(self, index):
        """Test correcting text given on the command line."""
        result = runner.invoke(app, ["correct", "Patient on lysinopril"])

        assert result.exit_code == 0
        assert "Patient on lisinopril" in result.output

    def test_correct_stdin(self, index):
        """Test correcting text read from stdin."""
        result = runner.invoke(app, ["correct"], input="Patient on lysinopril\n")

        assert result.exit_code == 0
        assert "Patient on lisinopril" in result.output

    def test_overlay_option(self, index, tmp_path):
        """Test an explicit overlay file takes priority."""
        overlay = tmp_path / "custom.txt"
        overlay.write_text("lysinopril -> Zestril\n", encoding="utf-8")

        result = runner.invoke(app, ["correct", "Lysinopril", "--overlay", str(overlay)])

        assert result.exit_code == 0
        assert "Zestril" in result.output

    def test_show_log(self, index):
        """Test the substitution table."""
        result = runner.invoke(app, ["correct", "lysinopril", "--log"])

        assert result.exit_code == 0
        assert "1 correction(s)" in result.output
        assert "exact" in result.output

    def test_save_log(self, index, tmp_path):
        """Test writing the correction log to JSON."""
        log_path = tmp_path / "log.json"

        result = runner.invoke(app, ["correct", "lysinopril", "--save-log", str(log_path)])

        assert result.exit_code == 0
        data = json.loads(log_path.read_text(encoding="utf-8"))
        assert data["correction_count"] == 1
        assert data["corrections"][0]["corrected"] == "lisinopril"

    def test_save_log_unwritable(self, index, tmp_path):
        """Test a log path that cannot be written is reported."""
        result = runner.invoke(app, ["correct", "lysinopril", "--save-log", str(tmp_path)])

        assert result.exit_code == 1
        assert "[resource]" in result.output
        assert "Cannot write correction log" in result.output

    def test_missing_index_passes_through(self, tmp_path):
        """Test a missing index leaves text unchanged."""
        result = runner.invoke(
            app, ["correct", "Patient on lysinopril", "--index", str(tmp_path / "none.mvix")]
        )

        assert result.exit_code == 0
        assert "Patient on lysinopril" in result.output

    def test_invalid_config(self, tmp_path):
        """Test a broken config file is reported."""
        config = tmp_path / "config.json"
        config.write_text("{broken", encoding="utf-8")

        result = runner.invoke(app, ["--config", str(config), "correct", "text"])

        assert result.exit_code == 1
        assert "[configuration]" in result.output


class TestLookupCommand:
    """Tests for 'medvocab lookup'."""

    def test_exact(self, index):
        """Test an exact hit is reported as such."""
        result = runner.invoke(app, ["lookup", "lysinopril"])

        assert result.exit_code == 0
        assert "exact" in result.output
        assert "lisinopril" in result.output

    def test_fuzzy(self, index):
        """Test candidates are listed with scores."""
        result = runner.invoke(app, ["lookup", "metfromin"])

        assert result.exit_code == 0
        assert "metformin" in result.output
        assert "Accepted" in result.output

    def test_overlay(self, index, tmp_path):
        """Test an overlay hit short-circuits the index."""
        overlay = tmp_path / "custom.txt"
        overlay.write_text("diabeetus -> diabetes\n", encoding="utf-8")

        result = runner.invoke(app, ["lookup", "diabeetus", "--overlay", str(overlay)])

        assert result.exit_code == 0
        assert "overlay" in result.output

    def test_terms_are_not_markup(self, index, tmp_path):
        """Test square brackets in terms are printed literally."""
        overlay = tmp_path / "custom.txt"
        overlay.write_text("zzfoo -> [bold]zzbar\n", encoding="utf-8")

        result = runner.invoke(app, ["lookup", "zzfoo", "--overlay", str(overlay)])

        assert result.exit_code == 0
        assert "[bold]zzbar" in result.output

    def test_no_candidates(self, index):
        """Test a word far from every term."""
        result = runner.invoke(app, ["lookup", "qqqqqqqqqqqq"])

        assert result.exit_code == 0
        assert "No candidates" in result.output


class TestInfoCommand:
    """Tests for 'medvocab info'."""

    def test_info(self, index):
        """Test index details are shown."""
        result = runner.invoke(app, ["info", str(index)])

        assert result.exit_code == 0
        assert "metaphone" in result.output
        assert "medication-generic" in result.output

    def test_info_missing(self, tmp_path):
        """Test a missing index is an error."""
        result = runner.invoke(app, ["info", str(tmp_path / "none.mvix")])

        assert result.exit_code == 1
        assert "[resource]" in result.output

    def test_info_corrupt(self, tmp_path):
        """Test a corrupt index is an error."""
        path = tmp_path / "bad.mvix"
        path.write_bytes(b"garbage!")

        result = runner.invoke(app, ["info", str(path)])

        assert result.exit_code == 1
        assert "[format]" in result.output


class TestInitOverlayCommand:
    """Tests for 'medvocab init-overlay'."""

    def test_creates_default(self, medvocab_home):
        """Test the overlay is created in the config directory."""
        result = runner.invoke(app, ["init-overlay"])

        assert result.exit_code == 0
        assert "Created" in result.output
        assert (medvocab_home / "custom_medical_vocab.txt").exists()

    def test_existing(self, tmp_path):
        """Test an existing overlay is left alone."""
        path = tmp_path / "custom.txt"
        path.write_text("mine\n", encoding="utf-8")

        result = runner.invoke(app, ["init-overlay", str(path)])

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert path.read_text(encoding="utf-8") == "mine\n"
