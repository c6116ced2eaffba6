"""Identifier and token helpers shared by the generators."""

import re

from tf2code._ir import ResourceNode

_WORD_SPLIT_RE = re.compile(r"[^A-Za-z0-9]+")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def _words(name: str) -> list[str]:
    return [w for w in _WORD_SPLIT_RE.split(name) if w]


def camel_case(name: str) -> str:
    """``"my_bucket-policy"`` -> ``"myBucketPolicy"``."""
    words = _words(name)
    if not words:
        return "_"
    head, *tail = words
    result = head[0].lower() + head[1:] + "".join(w[0].upper() + w[1:] for w in tail)
    return f"_{result}" if result[0].isdigit() else result


def pascal_case(name: str) -> str:
    """``"s3_bucket"`` -> ``"S3Bucket"``."""
    result = "".join(w[0].upper() + w[1:] for w in _words(name))
    return result or "_"


def snake_case(name: str) -> str:
    """``"myBucket-policy"`` -> ``"my_bucket_policy"``."""
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name)
    result = "_".join(w.lower() for w in _words(spaced))
    if not result:
        return "_"
    return f"_{result}" if result[0].isdigit() else result


def is_identifier(name: str) -> bool:
    return bool(_IDENTIFIER_RE.match(name))


def resource_token(resource: ResourceNode) -> tuple[str, tuple[str, ...], str]:
    """Split a resource's target type into ``(package, modules, member)``.

    Uses the schema token when one is known (``"aws:s3/bucket:Bucket"`` gives
    ``("aws", ("s3",), "Bucket")``); otherwise derives the names from the
    resource type (``aws_s3_bucket`` gives ``("aws", (), "S3Bucket")``, and
    the data source ``aws_ami`` gives ``("aws", (), "getAmi")``).
    """
    token = resource.info.token if resource.info is not None else None
    if token and token.count(":") == 2:  # noqa: PLR2004
        package, module, member = token.split(":")
        module = module.split("/", 1)[0]
        return package, () if module in ("", "index") else (module,), member

    if resource.provider is not None:
        package = resource.provider.provider_name
    else:
        package = resource.type.split("_", 1)[0]
    rest = resource.type.split("_", 1)[1] if "_" in resource.type else resource.type
    member = pascal_case(rest)
    if resource.is_data_source:
        member = f"get{member}"
    return package, (), member


def provider_package(resource: ResourceNode) -> str:
    """The package alias a resource's type lives in."""
    return resource_token(resource)[0]
