"""Tests for JSON record storage and the receipt file store."""

import os
import unittest
import tempfile
import shutil
from uuid import uuid4

from models.expense import Category
from models.extracted_fields import ExtractedFields
from models.receipt import ReceiptJob, ReceiptStatus
from storage.base import StorageError
from storage.json_storage import JSONStorage
from storage.storage_manager import StorageManager


class TestJSONStorage(unittest.TestCase):
    """Test cases for JSONStorage."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.storage = JSONStorage(self.test_dir)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_receipt_job_upsert(self):
        """Test that saving a job twice keeps only the latest version."""
        job = ReceiptJob(filename="r.png")
        self.storage.save_receipt_job(job)
        job.start_processing()
        job.complete("text", ExtractedFields(amount=3.0))
        self.storage.save_receipt_job(job)

        loaded = self.storage.get_receipt_job(job.id)
        self.assertEqual(loaded.status, ReceiptStatus.COMPLETED)
        self.assertEqual(loaded.extracted_data.amount, 3.0)
        self.assertEqual(len(os.listdir(self.storage.receipts_dir)), 1)

    def test_missing_job_returns_none(self):
        self.assertIsNone(self.storage.get_receipt_job(uuid4()))

    def test_corrupt_job_file_raises_storage_error(self):
        job_id = uuid4()
        with open(os.path.join(self.storage.receipts_dir, f"{job_id}.json"), "w") as f:
            f.write("{not json")

        with self.assertRaises(StorageError):
            self.storage.get_receipt_job(job_id)

    def test_categories_are_case_insensitive_and_unique(self):
        self.storage.save_category(Category(id="c1", name="Groceries"))
        self.storage.save_category(Category(id="c2", name="GROCERIES"))

        self.assertEqual(self.storage.get_category_by_name("groceries").id, "c1")
        self.assertEqual(len(self.storage.list_categories()), 1)


class TestStorageManager(unittest.TestCase):
    """Test cases for StorageManager."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.manager = StorageManager(self.test_dir)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_store_source_copies_with_job_prefix(self):
        source = os.path.join(self.test_dir, "incoming.jpg")
        with open(source, "wb") as f:
            f.write(b"image-bytes")
        receipt_id = uuid4()

        stored = self.manager.store_source(receipt_id, source, "../My Receipt.jpg")
        os.remove(source)

        self.assertEqual(os.path.basename(stored), f"{receipt_id}_My_Receipt.jpg")
        with open(stored, "rb") as f:
            self.assertEqual(f.read(), b"image-bytes")

    def test_store_missing_source_raises(self):
        with self.assertRaises(StorageError):
            self.manager.store_source(uuid4(), os.path.join(self.test_dir, "gone.png"))

    def test_artifact_paths(self):
        processed = self.manager.processed_path_for("/x/abc_receipt.jpg")
        page = self.manager.page_image_path("/x/abc_statement.pdf", 2)

        self.assertTrue(processed.endswith(os.path.join("processed", "abc_receipt_processed.png")))
        self.assertTrue(page.endswith(os.path.join("processed", "abc_statement_page2.png")))

    def test_save_raw_text(self):
        receipt_id = uuid4()
        path = self.manager.save_raw_text(receipt_id, "WALMART\nTOTAL 5.00")

        self.assertTrue(path.endswith(f"{receipt_id}_raw.txt"))
        with open(path, encoding="utf-8") as f:
            self.assertEqual(f.read(), "WALMART\nTOTAL 5.00")


if __name__ == '__main__':
    unittest.main()
