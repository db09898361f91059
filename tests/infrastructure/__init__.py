"""
Shared test infrastructure for Stencil.

Modules:
- file_utils: creating template trees and config files
- cli_utils: running the CLI as a subprocess
"""

from .file_utils import write, write_tree, write_config, touch_later
from .cli_utils import run_cli, jload

__all__ = ["write", "write_tree", "write_config", "touch_later", "run_cli", "jload"]
