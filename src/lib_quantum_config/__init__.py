"""Multi-source configuration aggregation.

Collects configuration from TOML/JSON/INI files, prefixed environment
variables, and command-line arguments, merges them with a fixed precedence
(files < environment < command line), and returns an immutable
:class:`Config` with per-key provenance.

>>> from lib_quantum_config import EnvProvider, aggregate
>>> aggregate([EnvProvider("DEMO", environ={"DEMO_DEBUG": "yes"})])[0]
{'debug': True}
"""

from __future__ import annotations

from .adapters.cli.click_provider import DEFAULT_ARG_MAPPING, ClickProvider, config_options
from .adapters.env.default import EnvProvider
from .adapters.file_loaders.provider import FileProvider, convert_tree
from .adapters.filesystem import LocalFileSystem
from .adapters.path_resolvers.default import DefaultPathResolver
from .application.merge import merge_layers
from .application.ports import FileSystem, PathResolver, Provider, ProviderOutput
from .core import aggregate, build_providers, read_config, read_config_raw
from .domain.coercion import coerce_scalar
from .domain.config import EMPTY_CONFIG, Config, SourceInfo
from .domain.errors import (
    ConfigDirNotFound,
    ConfigError,
    DepthLimitExceeded,
    FileParse,
    InternalError,
    InvalidFormat,
    KeyConflict,
    NoConfigFilesFoundInDir,
    NotFound,
    SecurityViolation,
    SpecifiedFileNotFound,
    UnsupportedFormat,
    ValidationError,
)
from .domain.files import ConfigFileCandidate, FileFormat
from .domain.meta import AppMeta, default_env_prefix
from .domain.security import validate_path
from .domain.tree import ValueKind, kind_of
from .observability import bind_trace_id, get_logger

__all__ = [
    "AppMeta",
    "ClickProvider",
    "Config",
    "ConfigDirNotFound",
    "ConfigError",
    "ConfigFileCandidate",
    "DEFAULT_ARG_MAPPING",
    "DefaultPathResolver",
    "DepthLimitExceeded",
    "EMPTY_CONFIG",
    "EnvProvider",
    "FileFormat",
    "FileParse",
    "FileProvider",
    "FileSystem",
    "InternalError",
    "InvalidFormat",
    "KeyConflict",
    "LocalFileSystem",
    "NoConfigFilesFoundInDir",
    "NotFound",
    "PathResolver",
    "Provider",
    "ProviderOutput",
    "SecurityViolation",
    "SourceInfo",
    "SpecifiedFileNotFound",
    "UnsupportedFormat",
    "ValidationError",
    "ValueKind",
    "aggregate",
    "bind_trace_id",
    "build_providers",
    "coerce_scalar",
    "config_options",
    "convert_tree",
    "default_env_prefix",
    "get_logger",
    "kind_of",
    "merge_layers",
    "read_config",
    "read_config_raw",
    "validate_path",
]
