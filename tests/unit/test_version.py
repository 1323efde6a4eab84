from __future__ import annotations

import json
from pathlib import Path

import dynowire


def test_version_matches_version_json() -> None:
    version_file = Path(__file__).resolve().parents[2] / "src" / "dynowire" / "version.json"
    data = json.loads(version_file.read_text(encoding="utf-8"))
    assert dynowire.__repo_version__ == data["version"]
    if "-rc." in data["version"]:
        assert "-rc." not in dynowire.__version__
        assert "rc" in dynowire.__version__
    else:
        assert dynowire.__version__ == data["version"]
