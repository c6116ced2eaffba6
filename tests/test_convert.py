"""Tests for the conversion pipeline."""

import io
import logging
from pathlib import Path

import pytest

from tf2code import (
    BindingError,
    ConfigurationError,
    ConvertError,
    LoadError,
    Options,
    ProviderInfo,
    PythonGenerator,
    PythonOptions,
    StaticProviderInfoSource,
    TypeScriptGenerator,
    TypeScriptOptions,
    add_location_annotations,
    build_forest,
    convert,
    filter_resource_names,
    new_generator,
)
from tf2code._ir import Comments, DefaultInfo, ResourceInfo, SchemaInfo
from tf2code._module import ModuleStorage

from .conftest import WriteModule, load_forest, load_tree


def _bucket_source(*, auto_named: bool = True) -> StaticProviderInfoSource:
    bucket = ResourceInfo(
        token="aws:s3/bucket:Bucket",
        fields={"bucket": SchemaInfo(default=DefaultInfo(auto_named=auto_named))},
    )
    ami = ResourceInfo(fields={"name": SchemaInfo(default=DefaultInfo(auto_named=True))})
    return StaticProviderInfoSource(
        {"aws": ProviderInfo(name="aws", resources={"aws_s3_bucket": bucket}, data_sources={"aws_ami": ami})},
    )


class TestBuildForest:
    def test_children_before_parents(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            module "a" {
              source = "./a"
            }

            module "b" {
              source = "./b"
            }
            """,
        )
        write_module("a", main='module "inner" {\n  source = "../inner"\n}\n')
        write_module("b", main='variable "x" {\n  default = 1\n}\n')
        write_module("inner", main='output "y" {\n  value = 2\n}\n')

        forest = build_forest(load_tree(root, storage), True, Options())  # noqa: FBT003

        assert [g.path for g in forest] == [("a", "inner"), ("a",), ("b",), ()]
        assert [g.is_root for g in forest] == [False, False, False, True]
        assert forest[-1].name == "root"
        assert forest[0].name == "inner"

    def test_single_module(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main='variable "x" {}\n')
        forest = load_forest(root, storage)
        assert len(forest) == 1
        assert forest[0].is_root

    def test_first_failure_is_raised(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main='module "a" {\n  source = "./a"\n}\n')
        write_module("a", main='output "y" {\n  value = local.nope\n}\n')
        with pytest.raises(BindingError, match=r"module root\.a, output 'y'"):
            load_forest(root, storage)


class TestFilterResourceNames:
    SOURCE = """
    resource "aws_s3_bucket" "logs" {
      bucket = "logs"
      acl    = "private"
    }

    data "aws_ami" "ubuntu" {
      name = "ubuntu"
    }
    """

    def test_auto_named_properties(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main=self.SOURCE)
        forest = build_forest(load_tree(root, storage), True, Options(provider_info_source=_bucket_source()))  # noqa: FBT003

        filter_resource_names(forest)

        graph = forest[-1]
        assert set(graph.resources["aws_s3_bucket.logs"].properties) == {"acl"}
        # Data sources keep their properties.
        assert set(graph.resources["data.aws_ami.ubuntu"].properties) == {"name"}

    def test_not_auto_named(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main=self.SOURCE)
        source = _bucket_source(auto_named=False)
        forest = build_forest(load_tree(root, storage), True, Options(provider_info_source=source))  # noqa: FBT003

        filter_resource_names(forest)

        assert set(forest[-1].resources["aws_s3_bucket.logs"].properties) == {"bucket", "acl"}

    def test_explicit_property(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main=self.SOURCE)
        forest = load_forest(root, storage, allow_missing_providers=True)

        filter_resource_names(forest, "acl")

        graph = forest[-1]
        assert set(graph.resources["aws_s3_bucket.logs"].properties) == {"bucket"}
        assert set(graph.resources["data.aws_ami.ubuntu"].properties) == {"name"}

    def test_explicit_property_ignores_schema(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main=self.SOURCE)
        forest = build_forest(load_tree(root, storage), True, Options(provider_info_source=_bucket_source()))  # noqa: FBT003

        filter_resource_names(forest, "acl")

        graph = forest[-1]
        # "bucket" is auto-named in the schema but only the named property goes.
        assert set(graph.resources["aws_s3_bucket.logs"].properties) == {"bucket"}
        assert set(graph.resources["data.aws_ami.ubuntu"].properties) == {"name"}

    def test_without_schema_information(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main=self.SOURCE)
        forest = load_forest(root, storage, allow_missing_providers=True)

        filter_resource_names(forest)

        assert set(forest[-1].resources["aws_s3_bucket.logs"].properties) == {"bucket", "acl"}


class TestLocationAnnotations:
    def test_annotations(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(
            main="""
            # The deployment region.
            variable "region" {}

            output "region" {
              value = var.region
            }
            """,
        )
        (graph,) = load_forest(root, storage)

        add_location_annotations(graph)

        comments = graph.variables["region"].comments
        assert comments is not None
        assert comments.leading == [" The deployment region.", "", " Originally defined at main.tf:2"]
        output_comments = graph.outputs["region"].comments
        assert output_comments is not None
        assert output_comments.leading == [" Originally defined at main.tf:4"]

    def test_nodes_without_location_are_skipped(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main="locals { a = 1 }\n")
        (graph,) = load_forest(root, storage, allow_missing_comments=True)

        add_location_annotations(graph)

        assert graph.locals["a"].comments is None

    def test_comments_are_created(self, write_module: WriteModule, storage: ModuleStorage) -> None:
        root = write_module(main='variable "region" {}\n')
        (graph,) = load_forest(root, storage)
        graph.variables["region"].comments = None

        add_location_annotations(graph)

        assert graph.variables["region"].comments == Comments(leading=[" Originally defined at main.tf:1"])


class TestNewGenerator:
    def test_typescript_requires_its_options(self) -> None:
        out = io.StringIO()
        with pytest.raises(ConfigurationError, match="^invalid target options of type NoneType$"):
            new_generator("auto", Options(writer=out))
        assert out.getvalue() == ""

    def test_typescript_default_options(self) -> None:
        generator = new_generator("auto", Options(target_options=TypeScriptOptions(), writer=io.StringIO()))
        assert isinstance(generator, TypeScriptGenerator)
        assert not generator.use_prompt_data_sources

    def test_typescript_options(self) -> None:
        options = Options(
            target_language="typescript",
            target_sdk_version="1.0.0",
            target_options=TypeScriptOptions(use_prompt_data_sources=True),
            writer=io.StringIO(),
        )
        generator = new_generator("auto", options)
        assert isinstance(generator, TypeScriptGenerator)
        assert generator.use_prompt_data_sources
        assert generator.sdk_version == "1.0.0"

    @pytest.mark.parametrize("target_options", [None, PythonOptions()])
    def test_python(self, target_options: PythonOptions | None) -> None:
        options = Options(target_language="python", target_options=target_options, writer=io.StringIO())
        assert isinstance(new_generator("auto", options), PythonGenerator)

    def test_unknown_language(self) -> None:
        out = io.StringIO()
        with pytest.raises(ConfigurationError, match="invalid language 'ruby', expected one of typescript, python"):
            new_generator("auto", Options(target_language="ruby", writer=out))
        assert out.getvalue() == ""

    @pytest.mark.parametrize(
        ("language", "target_options"),
        [("typescript", PythonOptions()), ("python", TypeScriptOptions())],
    )
    def test_mismatched_options(self, language: str, target_options: object) -> None:
        options = Options(target_language=language, target_options=target_options, writer=io.StringIO())
        with pytest.raises(ConfigurationError, match="invalid target options of type"):
            new_generator("auto", options)

    def test_invalid_sdk_version(self) -> None:
        with pytest.raises(ConfigurationError, match="invalid SDK version"):
            new_generator(
                "auto",
                Options(target_sdk_version="next", target_options=TypeScriptOptions(), writer=io.StringIO()),
            )


class TestConvert:
    def test_typescript_program(self, write_module: WriteModule, monkeypatch: pytest.MonkeyPatch) -> None:
        root = write_module(
            "project",
            main="""
            provider "aws" {
              region = "us-east-1"
            }

            resource "aws_s3_bucket" "logs" {
              bucket = "logs"
            }

            output "bucket" {
              value = aws_s3_bucket.logs.bucket
            }
            """,
        )
        monkeypatch.chdir(root)
        out = io.StringIO()

        convert(Options(path=str(root), writer=out, target_options=TypeScriptOptions()))

        program = out.getvalue()
        assert program.startswith('import * as pulumi from "@pulumi/pulumi";\n')
        assert 'const logs = new aws.S3Bucket("logs", {' in program
        assert "export const bucket = logs.bucket;" in program

    def test_python_program_with_post_processing(
        self,
        write_module: WriteModule,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        root = write_module("project", main='resource "aws_s3_bucket" "logs" {\n  bucket = "logs"\n  acl = "private"\n}\n')
        monkeypatch.chdir(root)
        out = io.StringIO()

        convert(
            Options(
                path=str(root),
                writer=out,
                target_language="python",
                provider_info_source=_bucket_source(),
                filter_resource_names=True,
                annotate_nodes_with_locations=True,
            ),
        )

        program = out.getvalue()
        assert "# Originally defined at main.tf:1" in program
        assert "logs = aws.s3.Bucket(" in program
        assert "bucket=" not in program
        assert '    acl="private",' in program

    def test_filter_disabled_keeps_auto_named_properties(
        self,
        write_module: WriteModule,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        root = write_module(
            "project",
            main=TestFilterResourceNames.SOURCE + '\noutput "ami" {\n  value = data.aws_ami.ubuntu.id\n}\n',
        )
        monkeypatch.chdir(root)
        out = io.StringIO()

        convert(
            Options(
                path=str(root),
                writer=out,
                target_language="python",
                provider_info_source=_bucket_source(),
                filter_resource_names=False,
            ),
        )

        program = out.getvalue()
        assert '    bucket="logs",' in program
        assert '    acl="private",' in program
        assert 'name="ubuntu"' in program

    def test_empty_path_means_current_directory(self, write_module: WriteModule, monkeypatch: pytest.MonkeyPatch) -> None:
        root = write_module("project", main='variable "region" {}\n')
        monkeypatch.chdir(root)
        out = io.StringIO()

        convert(Options(path="", writer=out, target_options=TypeScriptOptions()))

        assert 'const region = config.require("region");' in out.getvalue()

    def test_missing_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConvertError, match="^creating tree module: ") as exc_info:
            convert(Options(path=str(tmp_path / "missing"), writer=io.StringIO()))
        assert exc_info.value.stage == "creating tree module"
        assert isinstance(exc_info.value.__cause__, LoadError)

    def test_parse_error(self, write_module: WriteModule, monkeypatch: pytest.MonkeyPatch) -> None:
        root = write_module("project", main='resource "a_b" "c" {\n')
        monkeypatch.chdir(root)
        with pytest.raises(ConvertError, match="^loading module: Could not parse"):
            convert(Options(path=str(root), writer=io.StringIO()))

    def test_binding_error(self, write_module: WriteModule, monkeypatch: pytest.MonkeyPatch) -> None:
        root = write_module("project", main='output "x" {\n  value = var.missing\n}\n')
        monkeypatch.chdir(root)
        with pytest.raises(ConvertError, match="^importing Terraform project graphs: ") as exc_info:
            convert(Options(path=str(root), writer=io.StringIO()))
        assert isinstance(exc_info.value.cause, BindingError)

    def test_unknown_language(self, write_module: WriteModule, monkeypatch: pytest.MonkeyPatch) -> None:
        root = write_module("project", main='variable "region" {}\n')
        monkeypatch.chdir(root)
        out = io.StringIO()
        with pytest.raises(ConvertError, match="^creating generator: invalid language 'go'"):
            convert(Options(path=str(root), writer=out, target_language="go"))
        assert out.getvalue() == ""

    def test_generation_error(self, write_module: WriteModule, monkeypatch: pytest.MonkeyPatch) -> None:
        root = write_module("project", main='output "x" {\n  value = md5("a")\n}\n')
        monkeypatch.chdir(root)
        with pytest.raises(ConvertError, match="^generating code: function 'md5'"):
            convert(Options(path=str(root), writer=io.StringIO(), target_options=TypeScriptOptions()))

    def test_logger_receives_binding_warnings(
        self,
        write_module: WriteModule,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        root = write_module("project", main='output "x" {\n  value = var.region\n}\n')
        monkeypatch.chdir(root)
        log = logging.getLogger("tf2code.test")

        with caplog.at_level(logging.WARNING, logger="tf2code.test"):
            convert(
                Options(
                    path=str(root),
                    writer=io.StringIO(),
                    allow_missing_variables=True,
                    logger=log,
                    target_options=TypeScriptOptions(),
                ),
            )

        assert "binding undeclared variable 'region' to a placeholder" in caplog.text
