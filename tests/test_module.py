"""Tests for loading module trees."""

import hashlib
from pathlib import Path

import pytest

from tf2code._errors import LoadError
from tf2code._module import (
    DeclarationKind,
    ModuleStorage,
    ModuleTree,
    NoCredentials,
    Position,
    ServiceDiscovery,
    load_module_config,
    registry_host,
)
from tf2code._module._scan import scan_positions

from .conftest import WriteModule, load_tree

# =============================================================================
# Source positions
# =============================================================================


class TestScanPositions:
    def test_block_headers(self) -> None:
        text = (
            'provider "aws" {\n'
            '  region = "us-east-1"\n'
            "}\n"
            "\n"
            'resource "aws_s3_bucket" "logs" {\n'
            '  bucket = "logs"\n'
            "}\n"
            'variable "env" {}\n'
        )
        positions = scan_positions(text)
        assert positions[("provider", "", "aws")] == [1]
        assert positions[("resource", "aws_s3_bucket", "logs")] == [5]
        assert positions[("variable", "", "env")] == [8]

    def test_nested_blocks_are_not_declarations(self) -> None:
        text = 'resource "aws_instance" "web" {\n  variable "nope" {\n  }\n}\n'
        assert ("variable", "", "nope") not in scan_positions(text)

    def test_locals_attributes(self) -> None:
        text = 'locals {\n  region = "us-east-1"\n  tags = {\n    team = "x"\n  }\n}\n'
        positions = scan_positions(text)
        assert positions[("locals", "", "region")] == [2]
        assert positions[("locals", "", "tags")] == [3]
        assert ("locals", "", "team") not in positions

    def test_braces_in_strings_and_comments_are_ignored(self) -> None:
        text = (
            'resource "a_b" "one" {\n'
            '  value = "}}}"\n'
            "  # }\n"
            "}\n"
            'resource "a_b" "two" {}\n'
        )
        positions = scan_positions(text)
        assert positions[("resource", "a_b", "two")] == [5]

    def test_heredocs_are_skipped(self) -> None:
        text = 'resource "a_b" "one" {\n  policy = <<EOF\n}\nresource "a_b" "fake" {\nEOF\n}\noutput "o" {}\n'
        positions = scan_positions(text)
        assert ("resource", "a_b", "fake") not in positions
        assert positions[("output", "", "o")] == [7]

    def test_repeated_providers(self) -> None:
        text = 'provider "aws" {}\nprovider "aws" {\n  alias = "west"\n}\n'
        assert scan_positions(text)[("provider", "", "aws")] == [1, 2]


# =============================================================================
# Module configuration
# =============================================================================


class TestLoadModuleConfig:
    def test_declarations_by_kind(self, write_module: WriteModule) -> None:
        directory = write_module(
            main="""
            provider "aws" {
              region = "us-east-1"
            }

            resource "aws_s3_bucket" "logs" {
              bucket = "logs"
            }

            data "aws_caller_identity" "current" {}

            variable "env" {
              default = "dev"
            }

            locals {
              name = "app"
            }

            output "bucket" {
              value = aws_s3_bucket.logs.bucket
            }
            """,
        )
        config = load_module_config(directory, directory.resolve())

        assert [p.name for p in config.providers] == ["aws"]
        assert [(r.kind, r.type, r.name) for r in config.resources] == [
            (DeclarationKind.RESOURCE, "aws_s3_bucket", "logs"),
            (DeclarationKind.DATA, "aws_caller_identity", "current"),
        ]
        assert [v.name for v in config.variables] == ["env"]
        assert [local.name for local in config.locals] == ["name"]
        assert config.output("bucket") is not None
        assert config.resources[0].position == Position("main.tf", 5)
        assert config.outputs[0].body["value"] == "${aws_s3_bucket.logs.bucket}"

    def test_files_are_read_in_name_order(self, write_module: WriteModule) -> None:
        directory = write_module(
            b='variable "second" {}\n',
            a='variable "first" {}\n',
        )
        config = load_module_config(directory)
        assert [v.name for v in config.variables] == ["first", "second"]

    def test_aliased_provider_name(self, write_module: WriteModule) -> None:
        directory = write_module(
            main="""
            provider "aws" {
              alias  = "west"
              region = "us-west-2"
            }
            """,
        )
        (provider,) = load_module_config(directory).providers
        assert provider.name == "aws.west"
        assert provider.type == "aws"

    def test_parse_error(self, write_module: WriteModule) -> None:
        directory = write_module(main='resource "a" "b" {\n')
        with pytest.raises(LoadError, match="Could not parse"):
            load_module_config(directory)

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert len(load_module_config(tmp_path)) == 0


# =============================================================================
# Module trees
# =============================================================================


class TestModuleTree:
    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(LoadError, match="does not exist"):
            ModuleTree.new("", tmp_path / "missing")

    def test_config_before_load(self, tmp_path: Path) -> None:
        tree = ModuleTree.new("", tmp_path)
        assert not tree.loaded
        with pytest.raises(LoadError, match="not been loaded"):
            _ = tree.config

    def test_local_children(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            module "network" {
              source = "./modules/network"
            }
            """,
        )
        write_module(
            "modules/network",
            main="""
            module "subnets" {
              source = "../subnets"
            }
            """,
        )
        write_module("modules/subnets", main='variable "cidr" {}\n')

        tree = load_tree(root, storage)

        (network,) = tree.children()
        assert network.name == "network"
        assert network.path == ("network",)
        (subnets,) = network.children()
        assert subnets.path == ("network", "subnets")
        assert subnets.display_path == "root.network.subnets"
        assert subnets.config.variables[0].position.filename == "modules/subnets/main.tf"

    def test_missing_local_source(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main='module "gone" {\n  source = "./gone"\n}\n')
        with pytest.raises(LoadError, match="does not exist"):
            load_tree(root, storage)

    def test_module_calling_its_ancestor(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main='module "child" {\n  source = "./child"\n}\n')
        write_module("child", main='module "loop" {\n  source = "../"\n}\n')
        with pytest.raises(LoadError, match="ancestors"):
            load_tree(root, storage)

    def test_remote_module_from_cache(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        source = "terraform-aws-modules/vpc/aws"
        root = write_module("project", main=f'module "vpc" {{\n  source = "{source}"\n}}\n')
        cached = storage.cache_dir("root.vpc", source)
        cached.mkdir(parents=True)
        (cached / "main.tf").write_text('output "vpc_id" {\n  value = "vpc-123"\n}\n')

        tree = load_tree(root, storage)

        (vpc,) = tree.children()
        assert vpc.directory == cached
        assert vpc.config.output("vpc_id") is not None

    def test_remote_module_not_cached(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main='module "vpc" {\n  source = "terraform-aws-modules/vpc/aws"\n}\n')
        with pytest.raises(LoadError, match="fetch it first"):
            load_tree(root, storage)


# =============================================================================
# Storage and credentials
# =============================================================================


class TestStorage:
    def test_default_storage_dir(self, tmp_path: Path) -> None:
        storage = ModuleStorage.default(tmp_path / ".terraform")
        assert storage.storage_dir == tmp_path / ".terraform" / "modules"
        assert isinstance(storage.services.credentials, NoCredentials)

    def test_cache_dir_is_keyed_by_module_and_source(self, tmp_path: Path) -> None:
        storage = ModuleStorage(tmp_path, ServiceDiscovery(NoCredentials()))
        expected = hashlib.md5(b"root.vpc;some/vpc/aws", usedforsecurity=False).hexdigest()
        assert storage.cache_dir("root.vpc", "some/vpc/aws") == tmp_path / expected
        assert storage.cache_dir("root.vpc", "other/vpc/aws") != storage.cache_dir("root.vpc", "some/vpc/aws")

    def test_no_credentials(self) -> None:
        credentials = NoCredentials()
        assert credentials.for_host("registry.terraform.io") is None
        credentials.store_for_host("registry.terraform.io", object())  # type: ignore[arg-type]
        credentials.forget_for_host("registry.terraform.io")
        assert credentials.for_host("registry.terraform.io") is None

    @pytest.mark.parametrize(
        ("source", "host"),
        [
            ("hashicorp/consul/aws", "registry.terraform.io"),
            ("app.terraform.io/acme/vpc/aws", "app.terraform.io"),
            ("git::https://example.com/vpc.git", None),
            ("./local", None),
        ],
    )
    def test_registry_host(self, source: str, host: str | None) -> None:
        assert registry_host(source) == host
