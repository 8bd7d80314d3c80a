import os
import zipfile

import pytest

from licensedetect.core.interfaces import DirEntry, Filer, FilerError
from licensedetect.sources.fs import LocalFiler, MemoryFiler, ZipFiler, normalize_tree_path, open_filer


def _make_tree(root):
    (root / "LICENSE").write_text("MIT License", encoding="utf-8")
    (root / "licenses").mkdir()
    (root / "licenses" / "Apache-2.0.txt").write_text("Apache", encoding="utf-8")
    (root / "src").mkdir()
    (root / "src" / "main.py").write_text("print()", encoding="utf-8")
    return root


def _make_zip(path, members):
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


def test_normalize_tree_path():
    assert normalize_tree_path("") == ""
    assert normalize_tree_path(".") == ""
    assert normalize_tree_path("./a//b/") == "a/b"
    assert normalize_tree_path("a\\b") == "a/b"
    for bad in ("/etc/passwd", "../x", "a/../../x", "C:/x"):
        with pytest.raises(FilerError):
            normalize_tree_path(bad)


def test_local_filer_lists_and_reads(tmp_path):
    filer = LocalFiler(_make_tree(tmp_path))

    assert filer.read_dir("") == [
        DirEntry("LICENSE", False),
        DirEntry("licenses", True),
        DirEntry("src", True),
    ]
    assert filer.read_dir("licenses") == [DirEntry("Apache-2.0.txt", False)]
    assert filer.read_file("LICENSE") == b"MIT License"
    assert isinstance(filer, Filer)


def test_local_filer_missing_and_directory_reads(tmp_path):
    filer = LocalFiler(_make_tree(tmp_path))

    with pytest.raises(FilerError):
        filer.read_file("NOPE")
    with pytest.raises(FilerError):
        filer.read_file("src")
    with pytest.raises(FilerError):
        filer.read_dir("LICENSE")


def test_local_filer_refuses_escapes(tmp_path):
    root = tmp_path / "tree"
    root.mkdir()
    secret = tmp_path / "secret.txt"
    secret.write_text("secret", encoding="utf-8")
    filer = LocalFiler(root)

    with pytest.raises(FilerError):
        filer.read_file("../secret.txt")
    with pytest.raises(FilerError):
        filer.read_file(str(secret))


def test_local_filer_refuses_symlink_outside_root(tmp_path):
    root = tmp_path / "tree"
    root.mkdir()
    secret = tmp_path / "secret.txt"
    secret.write_text("secret", encoding="utf-8")
    try:
        os.symlink(secret, root / "LICENSE")
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")

    with pytest.raises(FilerError):
        LocalFiler(root).read_file("LICENSE")


def test_local_filer_caps_reads(tmp_path):
    (tmp_path / "big").write_bytes(b"x" * 5000)

    assert LocalFiler(tmp_path, max_file_bytes=100).read_file("big") == b"x" * 100


def test_local_filer_requires_directory(tmp_path):
    with pytest.raises(FilerError):
        LocalFiler(tmp_path / "missing")


def test_zip_filer_strips_single_top_directory(tmp_path):
    archive = _make_zip(
        tmp_path / "repo.zip",
        {
            "repo-main/LICENSE": "MIT License",
            "repo-main/licenses/BSD.txt": "BSD",
            "repo-main/README.md": "readme",
        },
    )

    with ZipFiler(archive) as filer:
        assert filer.read_dir("") == [
            DirEntry("LICENSE", False),
            DirEntry("README.md", False),
            DirEntry("licenses", True),
        ]
        assert filer.read_dir("licenses") == [DirEntry("BSD.txt", False)]
        assert filer.read_file("LICENSE") == b"MIT License"
        with pytest.raises(FilerError):
            filer.read_file("repo-main/LICENSE")


def test_zip_filer_flat_archive(tmp_path):
    archive = _make_zip(tmp_path / "flat.zip", {"LICENSE": "x", "src/a.py": "y"})

    with ZipFiler(archive) as filer:
        assert filer.read_dir("") == [DirEntry("LICENSE", False), DirEntry("src", True)]
        assert filer.read_file("src/a.py") == b"y"


def test_zip_filer_refuses_escapes(tmp_path):
    archive = _make_zip(tmp_path / "evil.zip", {"LICENSE": "x", "../evil": "y"})

    with ZipFiler(archive) as filer:
        assert [e.name for e in filer.read_dir("")] == ["LICENSE"]
        with pytest.raises(FilerError):
            filer.read_file("../evil")
        with pytest.raises(FilerError):
            filer.read_dir("missing")


def test_zip_filer_bad_archive(tmp_path):
    bad = tmp_path / "bad.zip"
    bad.write_bytes(b"not a zip")

    with pytest.raises(FilerError):
        ZipFiler(bad)


def test_memory_filer():
    filer = MemoryFiler({"LICENSE": "MIT", "docs/a/b.md": b"x"})

    assert filer.read_dir("") == [DirEntry("LICENSE", False), DirEntry("docs", True)]
    assert filer.read_dir("docs") == [DirEntry("a", True)]
    assert filer.read_file("LICENSE") == b"MIT"
    with pytest.raises(FilerError):
        filer.read_file("docs")
    with pytest.raises(FilerError):
        filer.read_dir("nope")
    with pytest.raises(FilerError):
        filer.read_dir("LICENSE")


def test_open_filer_dispatch(tmp_path):
    archive = _make_zip(tmp_path / "repo.zip", {"LICENSE": "x"})
    (tmp_path / "plain.txt").write_text("x", encoding="utf-8")

    assert isinstance(open_filer(tmp_path), LocalFiler)
    filer = open_filer(archive)
    assert isinstance(filer, ZipFiler)
    filer.close()
    with pytest.raises(FilerError):
        open_filer(tmp_path / "plain.txt")
    with pytest.raises(FilerError):
        open_filer(tmp_path / "missing")
