"""Tests for the TypeScript generator."""

import io

import pytest

from tf2code._errors import ConfigurationError, GenerationError
from tf2code._gen import TypeScriptGenerator, parse_sdk_version
from tf2code._ir import Graph
from tf2code._module import ModuleStorage

from .conftest import WriteModule, load_forest


def _generate(forest: list[Graph], *, sdk_version: str = "", prompt: bool = False) -> str:
    out = io.StringIO()
    TypeScriptGenerator("auto", sdk_version, prompt, out).generate(forest)
    return out.getvalue()


class TestParseSdkVersion:
    @pytest.mark.parametrize(
        ("version", "expected"),
        [
            ("", None),
            ("1.2.3", (1, 2, 3)),
            ("v0.17.28", (0, 17, 28)),
            ("2.0.0-alpha.1", (2, 0, 0)),
        ],
    )
    def test_valid(self, version: str, expected: tuple[int, int, int] | None) -> None:
        assert parse_sdk_version(version) == expected

    def test_invalid(self) -> None:
        with pytest.raises(ConfigurationError, match="invalid SDK version 'latest'"):
            parse_sdk_version("latest")


class TestRootModule:
    def test_program(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            provider "aws" {
              region = var.region
            }

            variable "region" {
              default = "us-east-1"
            }

            resource "aws_s3_bucket" "logs" {
              bucket = "logs-${var.region}"
              tags = {
                Team = "infra"
              }
            }

            output "bucket_arn" {
              value = aws_s3_bucket.logs.arn
            }
            """,
        )
        program = _generate(load_forest(root, storage))
        lines = program.splitlines()

        assert lines[0] == 'import * as pulumi from "@pulumi/pulumi";'
        assert lines[1] == 'import * as aws from "@pulumi/aws";'
        assert "const config = new pulumi.Config();" in lines
        assert 'const region = config.get("region") ?? "us-east-1";' in lines
        assert 'const awsProvider = new aws.Provider("aws", {' in lines
        assert "    region: region," in lines
        assert 'const logs = new aws.S3Bucket("logs", {' in lines
        assert "    bucket: `logs-${region}`," in lines
        assert '        Team: "infra",' in lines
        assert "}, { provider: awsProvider });" in lines
        assert "export const bucketArn = logs.arn;" in lines
        # Dependencies come first.
        assert lines.index('const region = config.get("region") ?? "us-east-1";') < lines.index(
            'const awsProvider = new aws.Provider("aws", {',
        )

    def test_required_typed_variables(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            variable "replicas" {
              type = number
            }

            variable "enabled" {
              type    = bool
              default = false
            }

            variable "tags" {
              type = map(string)
            }
            """,
        )
        program = _generate(load_forest(root, storage))
        assert 'const replicas = config.requireNumber("replicas");' in program
        assert 'const enabled = config.getBoolean("enabled") ?? false;' in program
        assert 'const tags = config.requireObject("tags");' in program

    def test_placeholder_variables_are_read_from_config(
        self,
        write_module: WriteModule,
        storage: ModuleStorage,
    ) -> None:
        root = write_module(main='output "region" {\n  value = var.region\n}\n')
        program = _generate(load_forest(root, storage, allow_missing_variables=True))
        assert "const config = new pulumi.Config();" in program
        assert 'const region = config.require("region");' in program
        assert "export const regionOutput = region;" in program


class TestResources:
    def test_count(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            resource "aws_instance" "web" {
              count = 2
              ami   = "ami-123"
            }
            """,
        )
        program = _generate(load_forest(root, storage, allow_missing_providers=True))
        assert "const web: aws.Instance[] = [];" in program
        assert "for (let i = 0; i < 2; i++) {" in program
        assert "    web.push(new aws.Instance(`web-${i}`, {" in program
        assert '        ami: "ami-123",' in program

    def test_for_each_over_a_set(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            resource "aws_s3_bucket" "buckets" {
              for_each = toset(["a", "b"])
              bucket   = each.value
            }
            """,
        )
        program = _generate(load_forest(root, storage, allow_missing_providers=True))
        assert "const buckets: Record<string, aws.S3Bucket> = {};" in program
        assert 'for (const [key, value] of [...new Set(["a", "b"])].map(v => [v, v])) {' in program
        assert "    buckets[key] = new aws.S3Bucket(`buckets-${key}`, {" in program
        assert "        bucket: value," in program

    def test_for_each_over_a_map(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            variable "buckets" {
              type = map(string)
            }

            resource "aws_s3_bucket" "b" {
              for_each = var.buckets
              bucket   = each.key
            }
            """,
        )
        program = _generate(load_forest(root, storage, allow_missing_providers=True))
        assert "for (const [key, value] of Object.entries(buckets)) {" in program

    def test_resource_options(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            resource "aws_s3_bucket" "base" {}

            resource "aws_s3_bucket" "copy" {
              depends_on = [aws_s3_bucket.base]

              lifecycle {
                ignore_changes = [force_destroy]
              }
            }
            """,
        )
        program = _generate(load_forest(root, storage, allow_missing_providers=True))
        assert 'const copy = new aws.S3Bucket("copy", {}, { dependsOn: [base], ignoreChanges: ["forceDestroy"] });' in program

    def test_nested_blocks(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            resource "aws_security_group" "web" {
              ingress {
                from_port = 80
                to_port   = 80
              }
            }
            """,
        )
        program = _generate(load_forest(root, storage, allow_missing_providers=True))
        assert "    ingress: [{" in program
        assert "        fromPort: 80," in program
        assert "    }]," in program

    def test_outputs_of_resources_are_interpolated(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            resource "aws_instance" "web" {
              ami = "ami-123"
            }

            output "url" {
              value = "http://${aws_instance.web.public_ip}"
            }
            """,
        )
        program = _generate(load_forest(root, storage, allow_missing_providers=True))
        assert "export const url = pulumi.interpolate`http://${web.publicIp}`;" in program


class TestDataSources:
    SOURCE = """
    data "aws_ami" "ubuntu" {
      most_recent = true
    }
    """

    def test_wrapped_in_output(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main=self.SOURCE)
        program = _generate(load_forest(root, storage, allow_missing_providers=True))
        assert "const ubuntu = pulumi.output(aws.getAmi({" in program
        assert "    mostRecent: true," in program
        assert "}, { async: true }));" in program

    def test_old_sdk_has_no_async_invokes(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main=self.SOURCE)
        program = _generate(load_forest(root, storage, allow_missing_providers=True), sdk_version="0.17.0")
        assert "}));" in program
        assert "async" not in program

    def test_prompt_data_sources(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main=self.SOURCE)
        program = _generate(load_forest(root, storage, allow_missing_providers=True), prompt=True)
        assert "const ubuntu = aws.getAmi({" in program
        assert "pulumi.output" not in program
        assert "async" not in program


class TestModules:
    def test_child_module_function(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            module "net" {
              source = "./net"
              cidr   = "10.0.0.0/16"
            }

            output "vpc" {
              value = module.net.vpc_id
            }
            """,
        )
        write_module(
            "net",
            main="""
            variable "cidr" {}

            resource "aws_vpc" "main" {
              cidr_block = var.cidr
            }

            output "vpc_id" {
              value = aws_vpc.main.id
            }
            """,
        )
        program = _generate(load_forest(root, storage, allow_missing_providers=True))
        lines = program.splitlines()

        function = lines.index("function netModule(name: string, args: Record<string, any>) {")
        call = lines.index('const net = netModule("net", {')
        assert function < call
        assert "    const cidr = args.cidr;" in lines
        assert "    const main = new aws.Vpc(`${name}-main`, {" in lines
        assert "        cidrBlock: cidr," in lines
        assert "        vpcId: main.id," in lines
        assert '    cidr: "10.0.0.0/16",' in lines
        assert "export const vpc = net.vpcId;" in lines


class TestExpressions:
    def test_functions_and_operators(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            variable "names" {
              default = ["a", "b"]
            }

            locals {
              joined = join(",", var.names)
              label  = length(var.names) == 2 ? "two" : "other"
              policy = jsonencode(var.names)
              script = file("init.sh")
              dir    = path.module
              stack  = terraform.workspace
            }
            """,
        )
        program = _generate(load_forest(root, storage))
        assert 'const joined = names.join(",");' in program
        assert 'const label = (names.length === 2) ? "two" : "other";' in program
        assert "const policy = JSON.stringify(names);" in program
        assert 'const script = fs.readFileSync("init.sh", "utf8");' in program
        assert 'const dir = ".";' in program
        assert "const stack = pulumi.getStack();" in program
        assert 'import * as fs from "fs";' in program

    def test_unsupported_function(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main='output "hash" {\n  value = md5("x")\n}\n')
        with pytest.raises(GenerationError, match="function 'md5' is not supported when generating TypeScript"):
            _generate(load_forest(root, storage))

    def test_empty_forest(self) -> None:
        with pytest.raises(GenerationError, match="forest is empty"):
            _generate([])
