"""test suite for nuget.config reading and writing."""
import pytest
import shutil
import sys
import tempfile
from pathlib import Path
from xml.etree import ElementTree as ET

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nugetkit.domain.errors import InvalidArgumentError
from nugetkit.domain.models import PackageRepositoryConfiguration
from nugetkit.registry.nuget_config import (
    build_nuget_config,
    read_repository_configurations,
    write_nuget_config,
)

CONFIG = """<?xml version="1.0" encoding="utf-8"?>
<configuration>
  <packageSources>
    <add key="nuget.org" value="https://api.nuget.org/v3/index.json" protocolVersion="3" />
    <add key="internal" value="https://nuget.example.com/nuget" />
  </packageSources>
</configuration>
"""


class TestReadRepositoryConfigurations:
    @pytest.fixture
    def temp_dir(self):
        temp = Path(tempfile.mkdtemp())
        yield temp
        shutil.rmtree(temp)

    def write(self, temp_dir, contents):
        path = temp_dir / "nuget.config"
        path.write_text(contents, encoding="utf-8")
        return path

    def test_reads_sources(self, temp_dir):
        configs = read_repository_configurations(self.write(temp_dir, CONFIG))
        assert configs == [
            PackageRepositoryConfiguration(
                source="https://api.nuget.org/v3/index.json", source_name="nuget.org", protocol_version=3
            ),
            PackageRepositoryConfiguration(source="https://nuget.example.com/nuget", source_name="internal"),
        ]

    def test_missing_file(self, temp_dir):
        with pytest.raises(InvalidArgumentError, match="does not exist"):
            read_repository_configurations(temp_dir / "missing.config")

    def test_not_xml(self, temp_dir):
        with pytest.raises(InvalidArgumentError, match="Could not parse"):
            read_repository_configurations(self.write(temp_dir, "not xml"))

    def test_no_sources(self, temp_dir):
        with pytest.raises(InvalidArgumentError, match="no packageSources"):
            read_repository_configurations(self.write(temp_dir, "<configuration />"))

    def test_invalid_protocol_version(self, temp_dir):
        contents = CONFIG.replace('protocolVersion="3"', 'protocolVersion="three"')
        with pytest.raises(InvalidArgumentError, match="invalid protocolVersion"):
            read_repository_configurations(self.write(temp_dir, contents))

    def test_byte_order_mark(self, temp_dir):
        path = temp_dir / "nuget.config"
        path.write_bytes(b"\xef\xbb\xbf" + CONFIG.encode("utf-8"))
        assert len(read_repository_configurations(path)) == 2


class TestBuildNuGetConfig:
    def test_sources_and_active_sources(self):
        configs = [
            PackageRepositoryConfiguration(source="https://a/index.json", source_name="a", protocol_version=3),
            PackageRepositoryConfiguration(source="https://b/", source_name="b"),
        ]
        root = ET.fromstring(build_nuget_config(configs).split("\n", 1)[1])
        sources = root.find("packageSources")
        assert [add.attrib for add in sources] == [
            {"key": "a", "value": "https://a/index.json", "protocolVersion": "3"},
            {"key": "b", "value": "https://b/"},
        ]
        assert [add.get("key") for add in root.find("activePackageSource")] == ["a", "b"]
        assert len(root.find("packageSourceCredentials")) == 0

    def test_credentials(self):
        configs = [
            PackageRepositoryConfiguration(
                source="https://c/", source_name="my feed", user_name="me", clear_text_password="pw"
            ),
        ]
        root = ET.fromstring(build_nuget_config(configs).split("\n", 1)[1])
        entry = root.find("packageSourceCredentials/my_x0020_feed")
        assert entry is not None
        assert {add.get("key"): add.get("value") for add in entry} == {
            "Username": "me",
            "ClearTextPassword": "pw",
        }

    def test_written_file_reads_back(self):
        temp = Path(tempfile.mkdtemp())
        try:
            configs = [
                PackageRepositoryConfiguration(source="https://a/index.json", source_name="a", protocol_version=3),
            ]
            path = write_nuget_config(configs, temp / "sub" / "nuget.config")
            assert read_repository_configurations(path) == configs
        finally:
            shutil.rmtree(temp)
