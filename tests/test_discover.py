from pathlib import Path

from exifstamp.discover import discover_inputs


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


def test_discover_filters_extensions_and_hidden_files(tmp_path: Path) -> None:
    photo = _touch(tmp_path / "IMG_0001.JPG")
    _touch(tmp_path / "._IMG_0001.JPG")
    _touch(tmp_path / "notes.txt")
    _touch(tmp_path / "nested" / "DSC_0002.NEF")
    assert discover_inputs(tmp_path) == [photo]


def test_recursive_discovery_skips_output_directory(tmp_path: Path) -> None:
    photo = _touch(tmp_path / "IMG_0001.jpg")
    nested = _touch(tmp_path / "day2" / "IMG_0002.heic")
    _touch(tmp_path / "output" / "IMG_0001__stamp.jpg")
    found = discover_inputs(tmp_path, recursive=True, exclude=[tmp_path / "output"])
    assert found == sorted([photo, nested])


def test_single_file_input(tmp_path: Path) -> None:
    photo = _touch(tmp_path / "a.png")
    assert discover_inputs(photo) == [photo]
    assert discover_inputs(tmp_path / "missing.jpg") == []
    assert discover_inputs(photo, extensions=["jpg"]) == []
