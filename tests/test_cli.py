"""Tests for the command line interface."""

import json
from unittest.mock import patch

import pytest

from cli import main
from models.receipt import ReceiptJob
from services.receipt_service import ReceiptProcessingResult
from storage.json_storage import JSONStorage
from utils.receipt_uploader import UnsupportedFileError


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep the CLI from reconfiguring logging onto captured stdout."""
    with patch('cli.setup_logging'):
        yield


def test_categories_seeds_defaults(tmp_path, capsys):
    assert main(["--data-dir", str(tmp_path), "categories"]) == 0

    out = capsys.readouterr().out
    assert "Created 15 default categories" in out
    assert "Groceries" in out


def test_show_unknown_job(tmp_path, capsys):
    assert main(["--data-dir", str(tmp_path), "show", "not-a-uuid"]) == 1
    assert "Receipt not found" in capsys.readouterr().err


def test_show_stored_job(tmp_path, capsys):
    job = ReceiptJob(filename="r.png")
    JSONStorage(str(tmp_path)).save_receipt_job(job)

    assert main(["--data-dir", str(tmp_path), "show", str(job.id)]) == 0
    assert json.loads(capsys.readouterr().out)['id'] == str(job.id)


def test_process_reports_result(tmp_path, receipt_image, capsys):
    job = ReceiptJob(filename="receipt.png")
    job.fail("OCR failed")
    result = ReceiptProcessingResult(success=False, job=job, error="OCR failed")

    with patch('cli.ReceiptService.from_config') as mock_from_config:
        mock_from_config.return_value.process_receipt.return_value = result
        exit_code = main(["--data-dir", str(tmp_path), "process", receipt_image, "--no-llm"])

    assert exit_code == 1
    llm_config = mock_from_config.call_args.args[1]
    assert llm_config.enabled is False
    assert json.loads(capsys.readouterr().out)['error'] == "OCR failed"


def test_process_rejects_unsupported_file(tmp_path, capsys):
    notes = tmp_path / "notes.txt"
    notes.write_text("hello")

    with patch('cli.ReceiptService.from_config') as mock_from_config:
        mock_from_config.return_value.process_receipt.side_effect = UnsupportedFileError("Unsupported file format: .txt")
        assert main(["--data-dir", str(tmp_path), "process", str(notes)]) == 2

    assert "Unsupported file format" in capsys.readouterr().err
