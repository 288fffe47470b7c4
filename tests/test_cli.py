from unittest.mock import MagicMock, patch

import pytest

from sellerwatch.cli import build_parser, main


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a temporary database and a clean environment."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "data" / "cli.db"))
    monkeypatch.setenv("ML_ACCESS_TOKEN", "test-token")
    monkeypatch.setenv("ML_SELLER_ID", "2199171685")
    monkeypatch.setenv("LOG_JSON", "false")
    return tmp_path


class TestParser:
    def test_changes_days(self):
        args = build_parser().parse_args(["changes", "--days", "3"])
        assert args.command == "changes"
        assert args.days == 3

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    def test_init_db(self, cli_env, capsys):
        main(["init-db"])

        assert (cli_env / "data" / "cli.db").exists()
        assert "Database ready" in capsys.readouterr().out

    def test_snapshots_empty(self, cli_env, capsys):
        main(["snapshots"])

        assert "No snapshots yet" in capsys.readouterr().out

    def test_changes_empty(self, cli_env, capsys):
        main(["changes", "--days", "1"])

        assert "No changes found." in capsys.readouterr().out

    @patch("sellerwatch.cli.execute_tool")
    def test_capture_baseline(self, mock_execute, cli_env, capsys):
        mock_execute.return_value = {
            "success": True,
            "snapshot_id": 1,
            "item_count": 12,
            "change_count": 0,
            "baseline": True,
        }

        main(["capture"])

        assert mock_execute.call_args.args[1:] == ("capture_snapshot", {})
        assert "Baseline snapshot #1 with 12 items." in capsys.readouterr().out

    @patch("sellerwatch.cli.execute_tool")
    def test_capture_failure_exits(self, mock_execute, cli_env, capsys):
        mock_execute.return_value = {
            "error": "Capture failed during persisting_changes: locked",
            "phase": "persisting_changes",
            "snapshot_id": 7,
        }

        with pytest.raises(SystemExit) as exc_info:
            main(["capture"])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Failed phase: persisting_changes" in out
        assert "Snapshot #7 was saved" in out

    def test_capture_requires_token(self, cli_env, monkeypatch, capsys):
        monkeypatch.setenv("ML_ACCESS_TOKEN", "")

        with pytest.raises(SystemExit):
            main(["capture"])

        assert "ML_ACCESS_TOKEN is not set" in capsys.readouterr().out

    @patch("sellerwatch.cli.execute_tool")
    def test_changes_printed(self, mock_execute, cli_env, capsys):
        mock_execute.return_value = {
            "days": 7,
            "count": 1,
            "changes": [
                {
                    "item_id": "MLB1",
                    "change_type": "price",
                    "previous_value": "100.00",
                    "new_value": "110.00",
                    "percent_variation": 10.0,
                    "detected_at": "2026-03-01T10:00:00",
                    "sold_count_before": 1,
                    "sold_count_after": 2,
                    "snapshot_date": "2026-03-01T10:00:00",
                }
            ],
        }

        main(["changes"])

        out = capsys.readouterr().out
        assert "MLB1" in out
        assert "100.00 -> 110.00 (+10.00%)" in out

    @patch("sellerwatch.cli.execute_tool")
    def test_json_output(self, mock_execute, cli_env, capsys):
        mock_execute.return_value = {"count": 0, "snapshots": []}

        main(["--json", "snapshots", "--limit", "5"])

        assert mock_execute.call_args.args[2] == {"limit": 5}
        assert '"count": 0' in capsys.readouterr().out

    @patch("sellerwatch.cli.create_services")
    def test_services_built_from_settings(self, mock_services, cli_env):
        history = MagicMock()
        history.list_snapshots.return_value = {"snapshots": []}
        mock_services.return_value = {"history": history}

        main(["snapshots"])

        settings = mock_services.call_args.args[0]
        assert settings.ml_seller_id == "2199171685"
