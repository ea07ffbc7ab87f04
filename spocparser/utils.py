from typing import Any, Mapping, TypeVar

T = TypeVar("T", bound=Mapping[str, Any])


def resolve_config(config: Mapping[str, Any] | None, default_config: T) -> T:
    _config = dict(default_config)
    if config:
        for key in _config:
            if key in config:
                _config[key] = config[key]
    return _config  # type: ignore[return-value]


def line_number(text: str, pos: int) -> int:
    """1-based line number of offset ``pos`` in ``text``."""
    return text.count("\n", 0, pos) + 1
