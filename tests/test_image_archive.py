"""
Tests for saving results to disk
"""
import os
from datetime import datetime

from image_archive import (
    ResultArchive,
    create_session_folder,
    safe_filename,
    save_generation_metadata,
    save_result,
)


def test_safe_filename():
    assert safe_filename("A cat, on Mars!") == "A_cat_on_Mars"
    assert safe_filename("x" * 80) == "x" * 50
    assert safe_filename("trailing   ") == "trailing"


def test_create_session_folder(tmp_path):
    folder = create_session_folder(str(tmp_path), "my session", now=datetime(2024, 5, 1, 12, 30, 0))

    assert os.path.basename(folder) == "20240501_123000_my_session"
    assert os.path.isdir(folder)


def test_save_result_writes_bytes(tmp_path, png_bytes):
    path = save_result(str(tmp_path / "run"), 3, "edit", "add a hat", png_bytes)

    assert os.path.basename(path) == "03_edit_add_a_hat.png"
    with open(path, "rb") as f:
        assert f.read() == png_bytes


def test_metadata_skips_empty_fields(tmp_path):
    path = save_generation_metadata(str(tmp_path), {
        "flow": "generate",
        "prompt": "a cat",
        "source_image": "",
        "saved_images": ["01_generate_a_cat.png"],
    })

    with open(path, encoding="utf-8") as f:
        text = f.read()
    assert "PROMPT:\n" in text and "a cat" in text
    assert "SOURCE IMAGE" not in text
    assert "1. 01_generate_a_cat.png" in text


def test_archive_uses_one_folder_per_session(tmp_path, png_bytes):
    archive = ResultArchive(str(tmp_path))

    first = archive.save("generate", "a cat", png_bytes)
    second = archive.save("edit", "add a hat", png_bytes, source_image="cat.png", model="gpt-4.1")

    assert os.path.dirname(first) == os.path.dirname(second) == archive.folder
    assert os.path.basename(second) == "02_edit_add_a_hat.png"
    assert os.path.exists(os.path.join(archive.folder, "02_generation_info.txt"))
