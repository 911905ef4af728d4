"""test suite for reading files out of package archives."""
import io
import pytest
import shutil
import sys
import tempfile
import zipfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nugetkit.bundling.archive import decode_contents, extract_matching_files
from nugetkit.domain.errors import InvalidArgumentError


def make_nupkg(files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


class TestExtractMatchingFiles:
    @pytest.fixture
    def work_root(self):
        temp = Path(tempfile.mkdtemp())
        yield temp
        shutil.rmtree(temp)

    @pytest.fixture
    def package_bytes(self):
        return make_nupkg({
            "Some.Package.nuspec": "<package />",
            "lib/net45/Some.Package.dll": b"\x00\x01",
            "lib/net45/Some.Package.xml": "<doc />",
            "content/readme.txt": "hello",
        })

    def test_matches_by_substring(self, package_bytes, work_root):
        found = extract_matching_files(package_bytes, ".nuspec", work_root)
        assert found == {"Some.Package.nuspec": b"<package />"}

    def test_matches_path_case_insensitive(self, package_bytes, work_root):
        found = extract_matching_files(package_bytes, "LIB/NET45", work_root)
        assert sorted(found) == ["lib/net45/Some.Package.dll", "lib/net45/Some.Package.xml"]

    def test_backslash_pattern(self, package_bytes, work_root):
        found = extract_matching_files(package_bytes, "content\\readme", work_root)
        assert found == {"content/readme.txt": b"hello"}

    def test_no_match(self, package_bytes, work_root):
        assert extract_matching_files(package_bytes, "missing", work_root) == {}

    def test_scratch_directory_removed(self, package_bytes, work_root):
        extract_matching_files(package_bytes, ".dll", work_root)
        assert list(work_root.iterdir()) == []

    def test_scratch_directory_removed_on_bad_archive(self, work_root):
        with pytest.raises(zipfile.BadZipFile):
            extract_matching_files(b"not a zip", ".dll", work_root)
        assert list(work_root.iterdir()) == []

    def test_missing_bytes(self, work_root):
        with pytest.raises(InvalidArgumentError):
            extract_matching_files(None, ".dll", work_root)


def test_decode_contents():
    assert decode_contents({"a.txt": "héllo".encode("utf-8")}) == {"a.txt": "héllo"}
    assert decode_contents({"a.txt": "héllo".encode("latin-1")}, "latin-1") == {"a.txt": "héllo"}


def test_decode_contents_replaces_invalid_bytes():
    decoded = decode_contents({"lib/net45/A.dll": b"\xff\xfe\x00MZ\x90", "lib/net45/A.xml": b"<doc />"})
    assert decoded["lib/net45/A.xml"] == "<doc />"
    assert "\ufffd" in decoded["lib/net45/A.dll"]
    assert "MZ" in decoded["lib/net45/A.dll"]
