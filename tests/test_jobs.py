import json
from pathlib import Path

import pytest

from pixel_abstraction.core_types import Dimension
from pixel_abstraction.jobs import JobConfig, load_jobs, parse_job


def _write(tmp_path: Path, data) -> Path:
    path = tmp_path / "jobs.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_jobs_resolves_relative_paths(tmp_path):
    path = _write(
        tmp_path,
        [
            {"file": "a.png", "output_width": 16, "output_height": 8, "colours": 4},
            {
                "file": "/abs/b.png",
                "output_width": 4,
                "output_height": 4,
                "colours": 2,
                "output_file": "out/b.png",
                "skip": True,
                "debug": True,
            },
        ],
    )
    jobs = load_jobs(path)
    assert jobs[0].file == tmp_path / "a.png"
    assert jobs[0].output_size == Dimension(8, 16)
    assert jobs[0].output_path() == tmp_path / "a_pixel.png"
    assert not jobs[0].skip
    assert jobs[1].file == Path("/abs/b.png")
    assert jobs[1].output_path() == tmp_path / "out" / "b.png"
    assert jobs[1].skip and jobs[1].debug


@pytest.mark.parametrize(
    "record",
    [
        ["not", "an", "object"],
        {"file": "a.png", "output_width": 4, "output_height": 4},
        {"file": "a.png", "output_width": "4", "output_height": 4, "colours": 2},
        {"file": "a.png", "output_width": True, "output_height": 4, "colours": 2},
        {"file": "", "output_width": 4, "output_height": 4, "colours": 2},
        {"file": "a.png", "output_width": 4, "output_height": 4, "colours": 2, "skip": "yes"},
        {"file": "a.png", "output_width": 4, "output_height": 4, "colours": 2, "extra": 1},
    ],
)
def test_malformed_records(record):
    with pytest.raises(ValueError):
        parse_job(record)


def test_top_level_must_be_array(tmp_path):
    with pytest.raises(ValueError):
        load_jobs(_write(tmp_path, {"file": "a.png"}))


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[{", encoding="utf-8")
    with pytest.raises(ValueError):
        load_jobs(path)


def test_run_config_validates():
    job = JobConfig(Path("a.png"), 4, 4, 17)
    with pytest.raises(ValueError):
        job.run_config()
    ok = JobConfig(Path("a.png"), 4, 2, 3).run_config()
    assert ok.output_size == Dimension(2, 4)
    assert ok.max_colours == 3
