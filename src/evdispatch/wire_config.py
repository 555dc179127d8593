# src/evdispatch/wire_config.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml

from evdispatch.core import log
from evdispatch.core.errors import ConfigError
from evdispatch.core.subscriber import Subscriber

l = log.get("evdispatch.wire_config")


def _refs(event: str, value: Any) -> List[Any]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConfigError(f"listeners for {event!r} must be a string or a list of strings")


def subscriber_from_mapping(data: Mapping[str, Any]) -> Subscriber:
    """Build a Subscriber from {"listen": {event: ref | [ref, ...]}}.

    Refs stay strings; the dispatcher resolves them when the subscriber is
    applied.
    """
    if not isinstance(data, Mapping) or "listen" not in data:
        raise ConfigError("missing top-level 'listen' section")
    table = data["listen"] or {}
    if not isinstance(table, Mapping):
        raise ConfigError("'listen' must map event names to listener refs")

    listen: Dict[str, List[Any]] = {}
    for event, value in table.items():
        listen[str(event)] = _refs(str(event), value)
    return Subscriber(listen)


def load_subscriber(yaml_path: str | Path) -> Subscriber:
    """Read an event table from YAML, e.g.

        listen:
          order.*: [app.listeners:audit]
          order.paid: app.listeners:send_receipt
    """
    try:
        data = yaml.safe_load(Path(yaml_path).read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {yaml_path}: {e}") from e
    sub = subscriber_from_mapping(data or {})
    l.info("loaded %d listener refs from %s", len(sub), yaml_path)
    return sub
