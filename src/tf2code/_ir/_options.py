from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import logging

    from ._schema import ProviderInfoSource


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Options threaded unchanged through every graph build of a conversion.

    Attributes:
        allow_missing_providers: Bind unknown providers to placeholders instead of failing.
        allow_missing_variables: Bind undeclared variables to placeholders instead of failing.
        allow_missing_comments: Leave comments unset when they cannot be recovered instead of failing.
        provider_info_source: Source of provider schema information.
        logger: Logger for diagnostics. Defaults to the binder's module logger.

    """

    allow_missing_providers: bool = False
    allow_missing_variables: bool = False
    allow_missing_comments: bool = False
    provider_info_source: ProviderInfoSource | None = None
    logger: logging.Logger | None = None
