"""
Tests for receipt paths and the local receipt store.
"""

import pytest

from expense_reports.storage.paths import receipt_hash, receipt_path, safe_file_name
from expense_reports.storage.receipts import ReceiptStore


class TestReceiptPath:

    def test_new_report_layout(self):
        assert receipt_path("u1", "k1", "taxi.pdf") == "u1/k1/taxi.pdf"

    def test_existing_report_layout(self):
        assert receipt_path("u1", "item1", "taxi.pdf", report_id="r1") == "u1/r1/item1/taxi.pdf"

    @pytest.mark.parametrize("name,expected", [
        ("../../etc/passwd", "passwd"),
        ("my receipt (1).jpg", "my_receipt_1_.jpg"),
        ("", "receipt"),
        ("...", "receipt"),
    ])
    def test_safe_file_name(self, name, expected):
        assert safe_file_name(name) == expected

    def test_hash_is_stable(self):
        assert receipt_hash(b"abc") == receipt_hash(b"abc")
        assert receipt_hash(b"abc") != receipt_hash(b"abd")


class TestReceiptStore:

    def test_save_and_load(self, tmp_path):
        store = ReceiptStore(root=str(tmp_path), base_url="/files/")
        path = store.save_bytes("u1/k1/a.pdf", b"%PDF")

        assert store.exists(path)
        assert store.load_bytes(path) == b"%PDF"
        assert store.url_for(path) == "/files/u1/k1/a.pdf"

    def test_save_replaces(self, tmp_path):
        store = ReceiptStore(root=str(tmp_path))
        store.save_bytes("u1/k1/a.pdf", b"one")
        store.save_bytes("u1/k1/a.pdf", b"two")
        assert store.load_bytes("u1/k1/a.pdf") == b"two"

    def test_delete(self, tmp_path):
        store = ReceiptStore(root=str(tmp_path))
        store.save_bytes("u1/k1/a.pdf", b"x")
        assert store.delete("u1/k1/a.pdf") is True
        assert store.delete("u1/k1/a.pdf") is False
        assert not store.exists("u1/k1/a.pdf")

    def test_missing_file(self, tmp_path):
        store = ReceiptStore(root=str(tmp_path))
        with pytest.raises(FileNotFoundError):
            store.load_bytes("nope.pdf")

    def test_owner_from_normalized_path(self, tmp_path):
        store = ReceiptStore(root=str(tmp_path))
        assert store.owner_of("u1/k1/a.pdf") == "u1"
        assert store.owner_of("u1/../u2/k1/a.pdf") == "u2"

    @pytest.mark.parametrize("path", ["..", "../u1/a.pdf", ".", "u1/.."])
    def test_owner_of_rejects_root_and_outside(self, tmp_path, path):
        store = ReceiptStore(root=str(tmp_path / "root"))
        with pytest.raises(ValueError):
            store.owner_of(path)

    def test_escape_refused(self, tmp_path):
        store = ReceiptStore(root=str(tmp_path / "root"))
        with pytest.raises(ValueError):
            store.save_bytes("../outside.pdf", b"x")
        assert store.exists("../outside.pdf") is False
