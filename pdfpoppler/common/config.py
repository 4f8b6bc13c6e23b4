"""Configuration file loading and management"""

import os
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from pdfpoppler.common.errors import ConfigurationError
from pdfpoppler.common.settings import settings
from pdfpoppler.common.types import ExecutionOptions, ResolvedConfiguration, RuntimeContext


@dataclass(frozen=True)
class PopplerConfig:
    """User supplied configuration; unset fields fall through to env, file and detection"""
    binary_path: Optional[str] = None
    binary_package: Optional[str] = None
    version: Optional[str] = None
    prefer_virtual_display: Optional[bool] = None
    platform: Optional[str] = None
    is_serverless: Optional[bool] = None
    is_ci: Optional[bool] = None
    encoding: Optional[str] = None
    max_output_bytes: Optional[int] = None
    timeout_s: Optional[float] = None
    env: Dict[str, str] = field(default_factory=dict)


@dataclass
class PopplerSection:
    """poppler: section of the YAML file"""
    binary_path: Optional[str]
    binary_package: Optional[str]
    version: Optional[str]
    prefer_virtual_display: Optional[bool]
    platform: Optional[str]


@dataclass
class ExecutionConfig:
    """execution: section of the YAML file"""
    encoding: str
    max_output_bytes: int
    timeout_seconds: Optional[float]
    env: Dict[str, str]


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str
    file: Optional[str]
    format: str


@dataclass
class FileConfig:
    """Complete configuration file contents"""
    poppler: PopplerSection
    execution: ExecutionConfig
    logging: LoggingConfig


class ConfigLoader:
    """Loads and parses configuration from YAML files"""

    DEFAULT_CONFIG_PATHS = [
        "pdfpoppler.yml",
        "~/.config/pdfpoppler/config.yml",
        "/etc/pdfpoppler/config.yml",
    ]

    DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @staticmethod
    def configFile_find() -> Optional[Path]:
        """
        Find configuration file in standard locations

        Returns:
            Path to config file, or None if not found
        """
        for config_path in ConfigLoader.DEFAULT_CONFIG_PATHS:
            path = Path(config_path).expanduser().resolve()
            if path.exists() and path.is_file():
                return path
        return None

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> FileConfig:
        """
        Parse configuration dictionary into FileConfig object

        Every section and key is optional; missing values take defaults.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed FileConfig object
        """
        poppler_data = data.get("poppler") or {}
        poppler = PopplerSection(
            binary_path=poppler_data.get("binary_path"),
            binary_package=poppler_data.get("binary_package"),
            version=ConfigLoader._version_normalize(poppler_data.get("version")),
            prefer_virtual_display=poppler_data.get("prefer_virtual_display"),
            platform=poppler_data.get("platform"),
        )

        execution_data = data.get("execution") or {}
        env_data = execution_data.get("env") or {}
        if not isinstance(env_data, dict):
            raise ValueError("execution.env must be a mapping of variable names to values")
        timeout_data = execution_data.get("timeout_seconds")
        execution = ExecutionConfig(
            encoding=execution_data.get("encoding", settings.DEFAULT_ENCODING),
            max_output_bytes=int(
                execution_data.get("max_output_bytes", settings.DEFAULT_MAX_OUTPUT_BYTES)
            ),
            timeout_seconds=float(timeout_data) if timeout_data is not None else None,
            env={str(k): str(v) for k, v in env_data.items()},
        )

        logging_data = data.get("logging") or {}
        logging = LoggingConfig(
            level=logging_data.get("level", "INFO"),
            file=logging_data.get("file"),
            format=logging_data.get("format", ConfigLoader.DEFAULT_LOG_FORMAT),
        )

        return FileConfig(poppler=poppler, execution=execution, logging=logging)

    @staticmethod
    def config_load(file_path: Optional[Path] = None) -> FileConfig:
        """
        Load configuration from file

        Args:
            file_path: Optional path to config file. If None, searches standard
                locations and falls back to defaults when nothing is found.

        Returns:
            Parsed FileConfig object

        Raises:
            FileNotFoundError: If an explicit config file does not exist
            ValueError: If config file is invalid
        """
        if file_path is None:
            file_path = ConfigLoader.configFile_find()
            if file_path is None:
                return ConfigLoader.config_parse({})

        data = ConfigLoader.yaml_load(file_path)
        return ConfigLoader.config_parse(data)

    @staticmethod
    def _version_normalize(value: Any) -> Optional[str]:
        # YAML reads an unquoted 24.08 as the float 24.08
        if value is None:
            return None
        if isinstance(value, float):
            return f"{value:.2f}"
        return str(value)


class ConfigBuilder:
    """Fluent builder for PopplerConfig

    Example:
        config = (
            ConfigBuilder()
            .osBinary_use()
            .preferVirtualDisplay_set(False)
            .version_set("24.02")
            .build()
        )
    """

    def __init__(self) -> None:
        self._config: PopplerConfig = PopplerConfig()

    def osBinary_use(self) -> "ConfigBuilder":
        """Use platform-detected binaries; clears explicit path and package"""
        self._config = replace(self._config, binary_path=None, binary_package=None)
        return self

    def binaryPath_set(self, binary_path: str) -> "ConfigBuilder":
        """Use an explicit bin directory; clears any package setting"""
        self._config = replace(self._config, binary_path=binary_path, binary_package=None)
        return self

    def binaryPackage_set(self, package_name: str) -> "ConfigBuilder":
        """Use binaries from an importable package; clears any explicit path"""
        self._config = replace(self._config, binary_package=package_name, binary_path=None)
        return self

    def preferVirtualDisplay_set(self, prefer: bool = True) -> "ConfigBuilder":
        self._config = replace(self._config, prefer_virtual_display=prefer)
        return self

    def version_set(self, version: str) -> "ConfigBuilder":
        self._config = replace(self._config, version=version)
        return self

    def platform_set(self, platform: str) -> "ConfigBuilder":
        self._config = replace(self._config, platform=platform)
        return self

    def serverless_set(self, is_serverless: bool = True) -> "ConfigBuilder":
        self._config = replace(self._config, is_serverless=is_serverless)
        return self

    def ci_set(self, is_ci: bool = True) -> "ConfigBuilder":
        self._config = replace(self._config, is_ci=is_ci)
        return self

    def env_add(self, env: Mapping[str, str]) -> "ConfigBuilder":
        """Merge extra variables into the process environment overrides"""
        self._config = replace(self._config, env={**self._config.env, **env})
        return self

    def maxOutputBytes_set(self, max_bytes: int) -> "ConfigBuilder":
        self._config = replace(self._config, max_output_bytes=max_bytes)
        return self

    def timeout_set(self, seconds: float) -> "ConfigBuilder":
        self._config = replace(self._config, timeout_s=seconds)
        return self

    def build(self) -> PopplerConfig:
        """Return the configuration built so far"""
        return replace(self._config, env=dict(self._config.env))


def environmentConfig_load(environ: Mapping[str, str]) -> PopplerConfig:
    """
    Read POPPLER_* overrides from an environment mapping

    Args:
        environ: Environment variables

    Returns:
        PopplerConfig holding only the overrides that are set
    """
    prefer_raw: Optional[str] = environ.get("POPPLER_PREFER_XVFB")
    prefer: Optional[bool] = None
    if prefer_raw is not None:
        prefer = prefer_raw.strip().lower() == "true"
    return PopplerConfig(
        binary_path=environ.get("POPPLER_BINARY_PATH") or None,
        binary_package=environ.get("POPPLER_BINARY_PACKAGE") or None,
        version=environ.get("POPPLER_VERSION") or None,
        prefer_virtual_display=prefer,
    )


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def configuration_resolve(
    user_config: PopplerConfig,
    context: RuntimeContext,
    environ: Optional[Mapping[str, str]] = None,
    file_config: Optional[FileConfig] = None,
) -> ResolvedConfiguration:
    """
    Merge user, environment, file and detected values into one immutable configuration

    Precedence is user config > POPPLER_* variables > YAML file > detection.

    Args:
        user_config: Explicit configuration
        context: Detected runtime context
        environ: Environment variables (defaults to os.environ)
        file_config: Parsed YAML configuration, if any

    Returns:
        ResolvedConfiguration

    Raises:
        ConfigurationError: If the platform is unsupported or options are invalid
    """
    if environ is None:
        environ = os.environ
    env_config = environmentConfig_load(environ)
    file_config = file_config or ConfigLoader.config_parse({})
    section = file_config.poppler
    execution = file_config.execution

    platform: str = _first_set(user_config.platform, section.platform, sys.platform)
    if platform not in settings.SUPPORTED_PLATFORMS:
        raise ConfigurationError(
            f"Unsupported platform: {platform}. "
            f"Supported: {', '.join(settings.SUPPORTED_PLATFORMS)}"
        )

    is_serverless: bool = _first_set(user_config.is_serverless, context.is_serverless)
    is_ci: bool = _first_set(user_config.is_ci, context.is_ci)

    prefer_override: Optional[bool] = _first_set(
        user_config.prefer_virtual_display,
        env_config.prefer_virtual_display,
        section.prefer_virtual_display,
    )
    # Headless hosts default to the virtual display variant
    prefer: bool = prefer_override if prefer_override is not None else (is_serverless or is_ci)

    max_output_bytes: int = _first_set(user_config.max_output_bytes, execution.max_output_bytes)
    if max_output_bytes <= 0:
        raise ConfigurationError(f"max_output_bytes must be positive, got {max_output_bytes}")
    timeout_s: Optional[float] = _first_set(user_config.timeout_s, execution.timeout_seconds)
    if timeout_s is not None and timeout_s <= 0:
        raise ConfigurationError(f"timeout must be positive, got {timeout_s}")

    merged_env: Dict[str, str] = {**execution.env, **user_config.env}

    return ResolvedConfiguration(
        platform=platform,
        is_serverless=is_serverless,
        is_ci=is_ci,
        has_display=context.has_display,
        is_test_runner=context.is_test_runner,
        prefer_virtual_display=prefer,
        prefer_virtual_display_override=prefer_override,
        execution=ExecutionOptions(
            encoding=_first_set(user_config.encoding, execution.encoding),
            max_output_bytes=max_output_bytes,
            timeout_s=timeout_s,
            env=MappingProxyType(merged_env),
        ),
        binary_path=_first_set(user_config.binary_path, env_config.binary_path, section.binary_path),
        binary_package=_first_set(
            user_config.binary_package, env_config.binary_package, section.binary_package
        ),
        version=_first_set(user_config.version, env_config.version, section.version),
    )
