"""Tests for provider schema information."""

import json
from pathlib import Path

import pytest

from tf2code._errors import ConfigurationError
from tf2code._ir import ProviderInfo, SchemaInfo, Schemas, load_provider_info_source


class TestLoadProviderInfoSource:
    def test_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "providers.toml"
        path.write_text(
            """
[providers.aws]
package = "aws"

[providers.aws.resources.aws_s3_bucket]
token = "aws:s3/bucket:Bucket"

[providers.aws.resources.aws_s3_bucket.fields.bucket.default]
auto_named = true
""",
        )

        source = load_provider_info_source(path)

        info = source.get_provider_info("aws")
        assert info is not None
        assert info.name == "aws"
        bucket = info.resource_info("aws_s3_bucket")
        assert bucket is not None
        assert bucket.token == "aws:s3/bucket:Bucket"
        default = bucket.fields["bucket"].default
        assert default is not None
        assert default.auto_named
        assert source.get_provider_info("google") is None
        assert "aws" in source

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "providers.json"
        path.write_text(json.dumps({"providers": {"aws": {"data_sources": {"aws_ami": {"token": "aws:ec2/getAmi:getAmi"}}}}}))

        info = load_provider_info_source(path).get_provider_info("aws")

        assert info is not None
        assert info.resource_info("aws_ami") is None
        ami = info.resource_info("aws_ami", is_data_source=True)
        assert ami is not None
        assert ami.token == "aws:ec2/getAmi:getAmi"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Could not read provider info"):
            load_provider_info_source(tmp_path / "missing.toml")

    def test_malformed_file(self, tmp_path: Path) -> None:
        path = tmp_path / "providers.json"
        path.write_text("{")
        with pytest.raises(ConfigurationError, match="Could not read provider info"):
            load_provider_info_source(path)

    def test_schema_mismatch(self, tmp_path: Path) -> None:
        path = tmp_path / "providers.toml"
        path.write_text('[providers.aws.resources.aws_s3_bucket]\nfields = "nope"\n')
        with pytest.raises(ConfigurationError, match="Invalid provider info"):
            load_provider_info_source(path)


class TestSchemas:
    def test_lookup(self) -> None:
        schemas = Schemas(SchemaInfo(fields={"tags": SchemaInfo(elem=SchemaInfo(name="tag"))}))

        assert schemas.property_schemas("tags").element_schemas().info == SchemaInfo(name="tag")
        assert schemas.property_schemas("missing").info is None
        assert Schemas().property_schemas("x").element_schemas().info is None

    def test_provider_info_defaults(self) -> None:
        info = ProviderInfo()
        assert info.resources == {}
        assert info.resource_info("anything") is None
