# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Tests for the CLI entry point."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from coreason_fda_orange_purple_book.exceptions import SourceUnavailableError
from coreason_fda_orange_purple_book.main import main, parse_args


class TestCli:
    """Tests for CLI arguments and execution."""

    def test_parse_args_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default arguments."""
        monkeypatch.delenv("FDA_BOOK_DB_PATH", raising=False)
        monkeypatch.delenv("FDA_BOOK_MAX_AGE_DAYS", raising=False)
        args = parse_args(["build"])
        assert args.command == "build"
        assert args.db_path == Path("data/orange-purple-book.db")
        assert args.max_age_days == 30
        assert args.force is False
        assert args.log_dir is None

    def test_parse_args_custom(self) -> None:
        """Test custom arguments."""
        args = parse_args(["--db-path", "/tmp/test.db", "--max-age-days", "7", "build", "--force"])
        assert args.db_path == Path("/tmp/test.db")
        assert args.max_age_days == 7
        assert args.force is True

    def test_parse_query(self) -> None:
        args = parse_args(["query", "analyze_patent_cliff", "--drug-name", "lipitor", "--years-ahead", "3"])
        assert args.method == "analyze_patent_cliff"
        assert args.drug_name == "lipitor"
        assert args.years_ahead == 3
        assert args.no_generics is False

    def test_parse_unknown_method(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["query", "delete_everything"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])

    @patch("coreason_fda_orange_purple_book.main.setup_logging")
    def test_query_prints_envelope(
        self, mock_logging: MagicMock, store_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["--db-path", str(store_path), "query", "search_orange_book", "--drug-name", "ibuprofen", "--no-generics"])

        envelope = json.loads(capsys.readouterr().out)
        assert envelope["success"] is True
        assert envelope["data"]["totalCount"] == 1

    @patch("coreason_fda_orange_purple_book.main.setup_logging")
    def test_query_failure_exits(
        self, mock_logging: MagicMock, store_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--db-path", str(store_path), "query", "get_patent_exclusivity", "--nda-number", "999999"])
        assert exc_info.value.code == 1
        assert json.loads(capsys.readouterr().out)["error"]["code"] == "APPLICATION_NOT_FOUND"

    @patch("coreason_fda_orange_purple_book.main.setup_logging")
    def test_build_uses_fresh_store(self, mock_logging: MagicMock, store_path: Path) -> None:
        with patch("coreason_fda_orange_purple_book.service.FdaBookSource") as mock_source_cls:
            main(["--db-path", str(store_path), "build"])
        mock_source_cls.return_value.download_all.assert_not_called()

    @patch("coreason_fda_orange_purple_book.main.setup_logging")
    def test_build_failure_exits(self, mock_logging: MagicMock, tmp_path: Path) -> None:
        """Test failure handling in main."""
        with patch("coreason_fda_orange_purple_book.service.FdaBookSource") as mock_source_cls:
            mock_source_cls.return_value.download_all.side_effect = SourceUnavailableError("down")
            with pytest.raises(SystemExit) as exc_info:
                main(["--db-path", str(tmp_path / "books.db"), "build"])
        assert exc_info.value.code == 1

    @patch("coreason_fda_orange_purple_book.main.setup_logging")
    def test_force_build_discards_store(self, mock_logging: MagicMock, store_path: Path) -> None:
        with patch("coreason_fda_orange_purple_book.service.FdaBookSource") as mock_source_cls:
            mock_source_cls.return_value.download_all.side_effect = SourceUnavailableError("down")
            with pytest.raises(SystemExit):
                main(["--db-path", str(store_path), "build", "--force"])
        assert not store_path.exists()
        mock_source_cls.return_value.download_all.assert_called_once()

    @patch("coreason_fda_orange_purple_book.main.setup_logging")
    @patch("coreason_fda_orange_purple_book.main.run_server")
    def test_serve(self, mock_run_server: MagicMock, mock_logging: MagicMock, tmp_path: Path) -> None:
        main(["--db-path", str(tmp_path / "books.db"), "serve"])
        mock_run_server.assert_called_once()
        mock_logging.assert_called_once_with(log_dir=None)
