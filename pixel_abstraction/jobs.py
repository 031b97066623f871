from __future__ import annotations

"""
Job batches.

A job list is a JSON array of objects:

  [
    {"file": "cat.png", "output_width": 64, "output_height": 48, "colours": 8,
     "output_file": "out/cat_pixel.png", "skip": false, "debug": false},
    ...
  ]

Relative paths are resolved against the job file's directory. output_file,
skip and debug are optional.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional

from .core_types import Dimension
from .engine.state import RunConfig

_REQUIRED = ("file", "output_width", "output_height", "colours")
_OPTIONAL = ("output_file", "skip", "debug")


@dataclass(frozen=True)
class JobConfig:
    file: Path
    output_width: int
    output_height: int
    colours: int
    output_file: Optional[Path] = None
    skip: bool = False
    debug: bool = False

    @property
    def output_size(self) -> Dimension:
        return Dimension(self.output_height, self.output_width)

    def output_path(self) -> Path:
        """Explicit output_file, else <stem>_pixel.png next to the input."""
        if self.output_file is not None:
            return self.output_file
        return self.file.with_name(f"{self.file.stem}_pixel.png")

    def run_config(self) -> RunConfig:
        """Validated RunConfig for this job; raises ValueError if unusable."""
        return RunConfig(output_size=self.output_size, max_colours=self.colours).validate()


def _int_field(record: Mapping[str, Any], name: str, index: int) -> int:
    value = record[name]
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"job {index}: '{name}' must be an integer, got {value!r}")
    return value


def _bool_field(record: Mapping[str, Any], name: str, index: int) -> bool:
    value = record.get(name, False)
    if not isinstance(value, bool):
        raise ValueError(f"job {index}: '{name}' must be true or false, got {value!r}")
    return value


def parse_job(record: Any, index: int = 0, base_dir: Optional[Path] = None) -> JobConfig:
    """Build a JobConfig from one decoded JSON object."""
    if not isinstance(record, dict):
        raise ValueError(f"job {index}: expected an object, got {type(record).__name__}")

    missing = [name for name in _REQUIRED if name not in record]
    if missing:
        raise ValueError(f"job {index}: missing field(s) {', '.join(missing)}")
    unknown = sorted(set(record) - set(_REQUIRED) - set(_OPTIONAL))
    if unknown:
        raise ValueError(f"job {index}: unknown field(s) {', '.join(unknown)}")

    file_value = record["file"]
    if not isinstance(file_value, str) or not file_value:
        raise ValueError(f"job {index}: 'file' must be a non-empty string")
    out_value = record.get("output_file")
    if out_value is not None and (not isinstance(out_value, str) or not out_value):
        raise ValueError(f"job {index}: 'output_file' must be a non-empty string")

    def resolve(text: str) -> Path:
        path = Path(text)
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        return path

    return JobConfig(
        file=resolve(file_value),
        output_width=_int_field(record, "output_width", index),
        output_height=_int_field(record, "output_height", index),
        colours=_int_field(record, "colours", index),
        output_file=resolve(out_value) if out_value is not None else None,
        skip=_bool_field(record, "skip", index),
        debug=_bool_field(record, "debug", index),
    )


def parse_jobs(data: Any, base_dir: Optional[Path] = None) -> List[JobConfig]:
    if not isinstance(data, list):
        raise ValueError("job list must be a JSON array")
    return [parse_job(record, i, base_dir) for i, record in enumerate(data)]


def load_jobs(path: Path) -> List[JobConfig]:
    """Read and parse a JSON job list. Raises ValueError on malformed content."""
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}: invalid JSON ({exc})") from exc
    return parse_jobs(data, base_dir=path.parent)


__all__ = ["JobConfig", "parse_job", "parse_jobs", "load_jobs"]
