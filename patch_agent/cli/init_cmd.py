"""Initialize patch-agent in a repository."""

from pathlib import Path
from typing import Callable, Optional

from ..config import CONFIG_FILE, CONFIG_ROOT, EXAMPLE_CONFIG
from ..utils import confirm


def init_repository(
    target_dir: Optional[Path] = None,
    confirm_func: Optional[Callable[[str], bool]] = None
) -> bool:
    """
    Initialize patch-agent in a repository.

    Creates:
      - .patch-agent/config.toml
    """
    target = target_dir or Path.cwd()
    ask = confirm_func or confirm

    if not (target / ".git").exists():
        print(f"Error: {target} is not a git repository")
        return False

    config_dir = target / CONFIG_ROOT
    config_file = config_dir / CONFIG_FILE

    if config_file.exists():
        if not ask(f"File {config_file} already exists. Overwrite it?"):
            print(f"Did not overwrite {config_file}")
            return False

    config_dir.mkdir(parents=True, exist_ok=True)
    config_file.write_text(EXAMPLE_CONFIG)
    print(f"Created config file {config_file}")

    print("\nNext steps:")
    print(f"  1. Edit {CONFIG_ROOT}/{CONFIG_FILE}")
    print("  2. patch-agent run")

    return True
