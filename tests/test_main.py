"""Unit tests for the main entry point.

Tests the main() function including:
- CLI argument parsing
- Configuration loading with priority (CLI > env > config)
- Service wiring from configuration
- Exit code handling for each error family
- A complete register/normalize/map/reconcile/report session
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from gradecheck.config.environment import EnvironmentConfig
from gradecheck.config.exceptions import ConfigurationError
from gradecheck.config.models import AppConfig, LoggingConfig, NormalizersConfig
from gradecheck.main import build_parser, build_services, load_runtime_config, main
from tests.helpers import sample_admission_workbook, sample_bordeaux_xml


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    def test_log_level_priority(self, tmp_path):
        """Test log level priority: CLI > env > config."""
        config_file = tmp_path / "config.yaml"

        with patch("gradecheck.main.load_config") as mock_load:
            mock_app_config = AppConfig(logging=LoggingConfig(level="WARNING", format="key-value"))
            mock_env_config = EnvironmentConfig(log_level="INFO")
            mock_load.return_value = (mock_app_config, mock_env_config)

            # CLI override takes precedence
            _, env_config = load_runtime_config(config_file, "DEBUG")
            assert env_config.log_level == "DEBUG"

            # Env override takes precedence over config
            mock_env_config.log_level = "INFO"
            _, env_config = load_runtime_config(config_file, None)
            assert env_config.log_level == "INFO"

            # Config value used when no overrides
            mock_env_config.log_level = None
            _, env_config = load_runtime_config(config_file, None)
            assert env_config.log_level == "WARNING"

    def test_missing_file_allowed_only_without_path(self, tmp_path):
        """Test defaults are allowed only when no --config was given."""
        with patch("gradecheck.main.load_config") as mock_load:
            mock_load.return_value = (AppConfig(), EnvironmentConfig())

            load_runtime_config(None, None)
            mock_load.assert_called_with(None, allow_missing=True)

            load_runtime_config(tmp_path / "config.yaml", None)
            mock_load.assert_called_with(tmp_path / "config.yaml", allow_missing=False)

    def test_configuration_error_propagates(self, tmp_path):
        """Test configuration errors are not swallowed."""
        with patch("gradecheck.main.load_config", side_effect=ConfigurationError("bad")):
            with pytest.raises(ConfigurationError):
                load_runtime_config(tmp_path / "config.yaml", None)


class TestBuildParser:
    """Test CLI argument parsing."""

    def test_map_arguments(self):
        """Test repeatable --add pairs and --delete ids."""
        args = build_parser().parse_args(["map", "1", "2", "--add", "2", "4", "--add", "3", "5", "--delete", "7"])

        assert args.command == "map"
        assert args.add == [[2, 4], [3, 5]]
        assert args.delete == [7]
        assert args.clear is False

    def test_register_requires_origin(self):
        """Test register needs a valid --origin."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["register", "file.xlsx"])
        with pytest.raises(SystemExit):
            build_parser().parse_args(["register", "file.xlsx", "--origin", "other"])

    def test_command_required(self):
        """Test a sub-command must be given."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestBuildServices:
    """Test service wiring."""

    def test_enabled_dialects_reach_registry(self, tmp_path):
        """Test the transcript registry follows normalizers.enabled_dialects."""
        app_config = AppConfig(normalizers=NormalizersConfig(enabled_dialects=[]))
        app_config.storage.blob_dir = str(tmp_path)

        services = build_services(app_config)

        assert len(services.transcript.registry) == 0
        assert services.files.blob_store.root == Path(str(tmp_path))
        assert services.pipeline.admission_service is services.admission


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Empty working directory with database and blobs under tmp_path."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'gradecheck.db'}")
    monkeypatch.setenv("BLOB_STORAGE_DIR", str(tmp_path / "blobs"))
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    (tmp_path / "candidats.xlsx").write_bytes(sample_admission_workbook())
    (tmp_path / "export.xml").write_bytes(sample_bordeaux_xml())
    yield tmp_path

    root.handlers[:] = handlers
    root.setLevel(level)


class TestMain:
    """Test suite for main() function."""

    def test_full_session(self, workspace, capsys):
        """Test a complete verification session through the CLI."""
        assert main(["register", "candidats.xlsx", "--origin", "admission"]) == 0
        assert main(["register", "export.xml", "--origin", "transcript", "--institution", "Bordeaux"]) == 0
        assert main(["normalize-admission", "1"]) == 0
        assert main(["normalize-transcript", "2"]) == 0
        capsys.readouterr()

        assert main(["fields", "1"]) == 0
        assert "score_Note_GMAT" in capsys.readouterr().out

        assert main(["map", "1", "2", "--add", "2", "4"]) == 0
        assert "2:score_Note_GMAT -> 4:grade_Semestre_2" in capsys.readouterr().out

        assert main(["reconcile", "1", "2"]) == 0
        out = capsys.readouterr().out
        assert "2/2 candidates matched" in out
        assert "fully_verified=1" in out

        assert main(["report", "1", "2"]) == 0
        out = capsys.readouterr().out
        assert "Dupont Élodie <-> DUPONT Elodie" in out
        assert "score_Note_GMAT / grade_Semestre_2: 16 vs 15" in out

    def test_normalization_error_exit_code(self, workspace, capsys):
        """Test a refused normalization exits with 1."""
        main(["register", "export.xml", "--origin", "transcript"])

        assert main(["normalize-admission", "1"]) == 1
        assert "INVALID_FILE_TYPE" in capsys.readouterr().err

    def test_reconcile_unnormalized_exit_code(self, workspace, capsys):
        """Test reconciling unnormalized files exits with 1."""
        main(["register", "candidats.xlsx", "--origin", "admission"])
        main(["register", "export.xml", "--origin", "transcript"])

        assert main(["reconcile", "1", "2"]) == 1
        assert "NOT_NORMALIZED" in capsys.readouterr().err

    def test_map_unknown_field_exit_code(self, workspace, capsys):
        """Test mapping a field the file does not have exits with 1."""
        main(["register", "candidats.xlsx", "--origin", "admission"])
        main(["register", "export.xml", "--origin", "transcript"])
        main(["normalize-admission", "1"])
        main(["normalize-transcript", "2"])

        assert main(["map", "1", "2", "--add", "9", "3"]) == 1
        assert "no field 9" in capsys.readouterr().err

    def test_register_missing_file_exit_code(self, workspace):
        """Test registering a missing file exits with 1."""
        assert main(["register", "nope.xlsx", "--origin", "admission"]) == 1

    def test_report_needs_a_selection(self, workspace, capsys):
        """Test report without arguments exits with 1."""
        assert main(["report"]) == 1
        assert "file pair" in capsys.readouterr().err

    def test_configuration_error_exit_code(self, workspace, capsys):
        """Test a missing --config file exits with 1."""
        assert main(["--config", "missing.yaml", "report"]) == 1
        assert "Configuration Error" in capsys.readouterr().err

    @patch("gradecheck.main.load_runtime_config", side_effect=KeyboardInterrupt)
    def test_keyboard_interrupt(self, mock_load, workspace):
        """Test Ctrl-C exits with 130."""
        assert main(["report"]) == 130

    @patch("gradecheck.main.build_services", side_effect=RuntimeError("boom"))
    def test_unexpected_error(self, mock_build, workspace, capsys):
        """Test unexpected errors exit with 1 and close the database."""
        with patch("gradecheck.main.close_database") as mock_close:
            assert main(["report"]) == 1
            mock_close.assert_called_once()
        assert "Fatal error: boom" in capsys.readouterr().err
