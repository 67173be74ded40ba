"""YAML scenario file loader.

Everything is validated eagerly: a bad scenario raises ConfigurationError (or
UnsupportedSourceError for an unknown source type) before any traffic is generated.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson
import yaml

from .exceptions import ConfigurationError, UnsupportedSourceError
from .logging_config import get_logger
from .models import (
    DEFAULT_PROVIDER,
    DEFAULT_TIMEOUT_MS,
    DataSourceConfig,
    FeedStrategy,
    HttpMethod,
    RequestTemplate,
    RunConfig,
    ScenarioConfig,
    SourceKind,
)

logger = get_logger("config")


def _validate_run_config(c: RunConfig) -> None:
    """Validate RunConfig bounds. Raises ConfigurationError if invalid."""
    if c.users < 1:
        raise ConfigurationError("users must be >= 1")
    if c.duration_seconds <= 0:
        raise ConfigurationError("duration_seconds must be > 0")
    if c.iterations < 0:
        raise ConfigurationError("iterations must be >= 0")
    if c.think_time_ms < 0:
        raise ConfigurationError("think_time_ms must be >= 0")


def validate_run_config(config: RunConfig) -> None:
    """Validate RunConfig. Raises ConfigurationError if invalid."""
    _validate_run_config(config)


def load_config(path: str | Path) -> tuple[RunConfig, list[ScenarioConfig]]:
    """Load run settings and scenarios from a YAML file.

    Args:
        path: Path to YAML scenario file

    Returns:
        (RunConfig, scenarios) with every scenario fully validated

    Raises:
        ConfigurationError: If file not found, invalid YAML, or validation fails
        UnsupportedSourceError: If a data source names an unknown type
    """
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(
            f"Config file not found: {path}",
            context={"path": str(path)},
        )

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        logger.exception("Failed to parse YAML config file")
        raise ConfigurationError(
            f"Invalid YAML syntax in config file: {e}",
            context={"path": str(path)},
            original_error=e,
        ) from e
    except OSError as e:
        logger.exception("Failed to read config file")
        raise ConfigurationError(
            f"Cannot read config file: {e}",
            context={"path": str(path)},
            original_error=e,
        ) from e

    if not isinstance(raw, dict):
        raise ConfigurationError(
            "Config must be a YAML object/dictionary",
            context={"path": str(path), "actual_type": type(raw).__name__},
        )

    try:
        run_config = RunConfig(
            users=int(raw.get("users", 1)),
            duration_seconds=float(raw.get("duration_seconds", 10)),
            iterations=int(raw.get("iterations", 0)),
            think_time_ms=float(raw.get("think_time_ms", 0)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid config value: {e}",
            context={"path": str(path)},
            original_error=e,
        ) from e
    _validate_run_config(run_config)

    scenarios = parse_scenarios(raw.get("scenarios"), base_dir=p.parent)
    logger.debug("Loaded config: users=%s, duration=%s, scenarios=%d", run_config.users, run_config.duration_seconds, len(scenarios))
    return run_config, scenarios


def parse_scenarios(raw: Any, base_dir: Path | None = None) -> list[ScenarioConfig]:
    """Parse the scenarios list. Names must be present and unique."""
    if not isinstance(raw, list) or not raw:
        raise ConfigurationError("Config must define a non-empty 'scenarios' list")

    scenarios: list[ScenarioConfig] = []
    seen: set[str] = set()
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigurationError(f"Scenario #{index} must be a mapping")
        name = str(item.get("name") or "").strip()
        if not name:
            raise ConfigurationError(f"Scenario #{index} has no name")
        if name in seen:
            raise ConfigurationError(f"Duplicate scenario name '{name}'")
        seen.add(name)
        request = item.get("request")
        if not isinstance(request, dict):
            raise ConfigurationError(
                f"Scenario '{name}' has no request configured",
                context={"scenario": name},
            )
        try:
            template = parse_request_template(request, base_dir=base_dir)
        except ConfigurationError as e:
            e.with_context(scenario=name)
            raise
        scenarios.append(ScenarioConfig(name=name, request=template))
    return scenarios


def parse_request_template(raw: dict[str, Any], base_dir: Path | None = None) -> RequestTemplate:
    """Build a RequestTemplate from its YAML mapping."""
    url = str(raw.get("url") or "").strip()
    if not url:
        raise ConfigurationError("Request has no url configured")

    method_str = str(raw.get("method") or "GET").strip().upper()
    try:
        method = HttpMethod(method_str)
    except ValueError as e:
        raise ConfigurationError(
            f"Unsupported HTTP method '{method_str}'. Supported methods: {', '.join(m.value for m in HttpMethod)}",
            original_error=e,
        ) from e

    headers_raw = raw.get("headers") or {}
    if not isinstance(headers_raw, dict):
        raise ConfigurationError("headers must be a mapping of name to value")
    headers = {str(k).strip(): "" if v is None else str(v) for k, v in headers_raw.items()}

    expected_status = raw.get("expected_status")
    if expected_status is not None:
        expected_status = _int_field(expected_status, "expected_status")
        if not 100 <= expected_status <= 599:
            raise ConfigurationError(f"expected_status must be an HTTP status code, got {expected_status}")

    timeout_ms = _int_field(raw.get("timeout_ms", DEFAULT_TIMEOUT_MS), "timeout_ms")
    if timeout_ms <= 0:
        raise ConfigurationError("timeout_ms must be > 0")

    step = raw.get("step")
    step_name = str(step).strip() if step is not None else ""
    data_source_raw = raw.get("data_source")
    return RequestTemplate(
        method=method,
        url=url,
        headers=headers,
        body=_body_text(raw.get("body")),
        expected_status=expected_status,
        timeout_ms=timeout_ms,
        step_name=step_name or None,
        data_source=parse_data_source(data_source_raw, base_dir),
    )


def parse_data_source(raw: Any, base_dir: Path | None = None) -> DataSourceConfig | None:
    """Build a DataSourceConfig. Relative CSV paths resolve against base_dir.

    A missing section or a blank type means a static request (None).
    """
    if not raw:
        return None
    if not isinstance(raw, dict):
        raise ConfigurationError("data_source must be a mapping")

    kind_str = str(raw.get("type") or "").strip().lower()
    if not kind_str:
        return None
    try:
        kind = SourceKind(kind_str)
    except ValueError as e:
        raise UnsupportedSourceError(
            f"Data source type '{raw.get('type')}' is not supported. "
            f"Supported types: {', '.join(k.value for k in SourceKind)}.",
            original_error=e,
        ) from e

    strategy_str = str(raw.get("feed_strategy") or FeedStrategy.RANDOM.value).strip().lower()
    try:
        strategy = FeedStrategy(strategy_str)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown feed strategy '{raw.get('feed_strategy')}'. "
            f"Supported strategies: {', '.join(s.value for s in FeedStrategy)}",
            original_error=e,
        ) from e

    if kind == SourceKind.CSV:
        file_path = str(raw.get("file_path") or "").strip()
        if not file_path:
            raise ConfigurationError("CSV data source requires file_path")
        if base_dir is not None and not Path(file_path).is_absolute():
            file_path = str(base_dir / file_path)
        return DataSourceConfig(kind=kind, file_path=file_path, feed_strategy=strategy)

    connection_string = str(raw.get("connection_string") or "").strip()
    query = str(raw.get("query") or "").strip()
    if not connection_string:
        raise ConfigurationError("Database data source requires connection_string")
    if not query:
        raise ConfigurationError("Database data source requires query")
    return DataSourceConfig(
        kind=kind,
        provider_name=str(raw.get("provider") or DEFAULT_PROVIDER).strip(),
        connection_string=connection_string,
        query=query,
        feed_strategy=strategy,
    )


def _int_field(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}", original_error=e) from e


def _body_text(body: Any) -> str | None:
    """Raw body text. Structured YAML bodies are serialized to JSON once, at load time."""
    if body is None:
        return None
    if isinstance(body, str):
        return body
    try:
        return orjson.dumps(body).decode("utf-8")
    except TypeError as e:
        raise ConfigurationError(f"body cannot be serialized to JSON: {e}", original_error=e) from e
