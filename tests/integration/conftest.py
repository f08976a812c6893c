# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests.

Provides a representative front-end workspace and helpers to run add
requests against it.
"""

import json
from pathlib import Path

import pytest

from component_tracker.config import CONFIG_FILENAME


def write_file(root: Path, relative: str, content: str = "") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content or f"// {relative}\n")
    return path


@pytest.fixture
def sample_workspace(tmp_path: Path, monkeypatch) -> Path:
    """Create a representative workspace and make it the current directory.

    Creates:
    - src/components/button and src/components/input with sources and tests
    - src/utils with loose utility files
    - an imported component with generated dist output and a binary asset
    - a .gitignore and a component tracker configuration file
    - a persisted tracking index recording the imported component

    Returns:
        Path to the workspace root
    """
    root = tmp_path / "workspace"

    write_file(root, "src/components/button/button.js", "export const Button = () => null;\n")
    write_file(root, "src/components/button/button.test.js", "test('button');\n")
    write_file(root, "src/components/button/index.js", "export * from './button';\n")
    write_file(root, "src/components/input/input.js", "export const Input = () => null;\n")
    write_file(root, "src/components/input/input.test.js", "test('input');\n")
    write_file(root, "src/components/input/input.stories.js", "export default {};\n")
    write_file(root, "src/utils/is-string.js", "export default (s) => typeof s === 'string';\n")
    write_file(root, "src/utils/pad-left.js", "export default (s) => ` ${s}`;\n")
    write_file(root, "src/utils/debug.log", "noise\n")

    write_file(root, "components/ui/logo/logo.js", "export default 'logo';\n")
    write_file(root, "components/ui/logo/logo.png", "PNG")
    write_file(root, "components/ui/logo/dist/logo.js", "module.exports = 'logo';\n")

    write_file(root, ".gitignore", "*.log\nnode_modules/\n")
    write_file(root, CONFIG_FILENAME, "max_workers: 2\n")

    bitmap = {
        "version": 1,
        "components": {
            "my-scope/ui/logo@1.0.0": {
                "files": [
                    {"relativePath": "components/ui/logo/logo.js", "test": False, "name": "logo.js"}
                ],
                "origin": "imported",
                "mainFile": "components/ui/logo/logo.js",
                "rootDir": "components/ui/logo",
                "dependencySources": ["logo.png"],
            }
        },
    }
    write_file(root, ".bitmap", json.dumps(bitmap, indent=2))

    monkeypatch.chdir(root)
    return root


@pytest.fixture
def read_bitmap(sample_workspace: Path):
    """Return a function reading the persisted tracking index."""

    def read() -> dict:
        return json.loads((sample_workspace / ".bitmap").read_text())

    return read
