from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .db import DB_FILENAME
from .github import DEFAULT_BRANCH, DEFAULT_OWNER, DEFAULT_REPO, GitHubConfig
from .supabase import DEFAULT_TABLE, SupabaseConfig


class ConfigError(ValueError):
	pass


DEFAULT_CONFIG_BASENAME = "config.yaml"
LOCAL_CONFIG_BASENAME = "minutes_sync.yaml"
CONFIG_ENV_VAR = "MINUTES_SYNC_CONFIG"

DEFAULT_TIMELINE_ROOT = "timeline"


DEFAULT_CONFIG_TEMPLATE = """version: 1

# Source of the minutes markdown (GitHub contents API).
github:
  owner: "SingularityNET-Archive"
  repo: "SingularityNET-Archive-GitBook"
  branch: "main"
  # Where --commit writes ordered JSON. Defaults to the source repo.
  # commit_owner: ""
  # commit_repo: ""
  # commit_branch: "main"
  timeout_s: 30

# Canonical records. The URL and key are read from SUPABASE_URL / SUPABASE_KEY.
supabase:
  table: "meetingsummaries"
  timeout_s: 30

timeline_root: "timeline"

# Local SQLite store used by --canonical-db and --import-canonical.
# store_dir: "~/.local/share/minutes-sync"
"""


def _xdg_config_home() -> Path:
	base = os.environ.get("XDG_CONFIG_HOME")
	if base:
		return Path(base)
	home = os.environ.get("HOME")
	if home:
		return Path(home) / ".config"
	return Path.home() / ".config"


def _xdg_data_home() -> Path:
	base = os.environ.get("XDG_DATA_HOME")
	if base:
		return Path(base)
	return Path.home() / ".local" / "share"


def default_config_path() -> Path:
	return _xdg_config_home() / "minutes-sync" / DEFAULT_CONFIG_BASENAME


def default_store_dir() -> Path:
	return _xdg_data_home() / "minutes-sync"


@dataclass(frozen=True)
class SyncConfig:
	github: GitHubConfig = field(default_factory=GitHubConfig)
	supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
	store_dir: Path = field(default_factory=default_store_dir)
	timeline_root: str = DEFAULT_TIMELINE_ROOT

	@property
	def canonical_db_path(self) -> Path:
		return self.store_dir / DB_FILENAME


def resolve_config_path(explicit: Optional[str], *, prefer_xdg: bool = False) -> Path:
	"""Resolve the config file path.

	Precedence:
	1) explicit CLI arg
	2) MINUTES_SYNC_CONFIG env var
	3) XDG config file (if exists)
	4) local ./minutes_sync.yaml (if exists)
	5) XDG config file (default location)
	"""

	if explicit:
		return Path(explicit)

	env_path = os.environ.get(CONFIG_ENV_VAR)
	if env_path:
		return Path(env_path)

	xdg = default_config_path()
	if xdg.exists():
		return xdg

	if not prefer_xdg:
		local = Path.cwd() / LOCAL_CONFIG_BASENAME
		if local.exists():
			return local

	return xdg


def init_config(path: Path, *, overwrite: bool = False) -> Path:
	"""Create a starter config file.

	If overwrite is False and the path exists, this is a no-op.
	Returns the path.
	"""

	if path.exists() and not overwrite:
		return path

	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
	return path


def _opt_str(section: Dict[str, Any], key: str, where: str) -> Optional[str]:
	value = section.get(key)
	if value is None:
		return None
	if not isinstance(value, str) or not value.strip():
		raise ConfigError(f"Config field '{where}.{key}' must be a non-empty string if provided.")
	return value.strip()


def _timeout(section: Dict[str, Any], where: str) -> float:
	value = section.get("timeout_s", 30.0)
	try:
		timeout = float(value)
	except (TypeError, ValueError) as e:
		raise ConfigError(f"Config field '{where}.timeout_s' must be a number.") from e
	if timeout <= 0:
		raise ConfigError(f"Config field '{where}.timeout_s' must be positive.")
	return timeout


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
	value = data.get(name)
	if value is None:
		return {}
	if not isinstance(value, dict):
		raise ConfigError(f"Config field '{name}' must be an object.")
	return value


def _env(env: Mapping[str, str], key: str) -> Optional[str]:
	value = env.get(key)
	return value.strip() if isinstance(value, str) and value.strip() else None


def build_config(data: Dict[str, Any], *, env: Optional[Mapping[str, str]] = None) -> SyncConfig:
	"""Validate a parsed config mapping; secrets come from the environment."""

	env = os.environ if env is None else env

	gh = _section(data, "github")
	github = GitHubConfig(
		owner=_opt_str(gh, "owner", "github") or DEFAULT_OWNER,
		repo=_opt_str(gh, "repo", "github") or DEFAULT_REPO,
		branch=_opt_str(gh, "branch", "github") or DEFAULT_BRANCH,
		token=_env(env, "GITHUB_TOKEN"),
		commit_owner=_opt_str(gh, "commit_owner", "github"),
		commit_repo=_opt_str(gh, "commit_repo", "github"),
		commit_branch=_opt_str(gh, "commit_branch", "github"),
		timeout_s=_timeout(gh, "github"),
	)

	sb = _section(data, "supabase")
	supabase = SupabaseConfig(
		url=_env(env, "SUPABASE_URL") or _opt_str(sb, "url", "supabase"),
		key=_env(env, "SUPABASE_KEY"),
		table=_opt_str(sb, "table", "supabase") or DEFAULT_TABLE,
		timeout_s=_timeout(sb, "supabase"),
	)

	store_dir = _opt_str(data, "store_dir", "config")
	timeline_root = _opt_str(data, "timeline_root", "config") or DEFAULT_TIMELINE_ROOT

	return SyncConfig(
		github=github,
		supabase=supabase,
		store_dir=Path(store_dir).expanduser() if store_dir else default_store_dir(),
		timeline_root=timeline_root.strip("/"),
	)


def load_config(path: Path, *, required: bool = False, env: Optional[Mapping[str, str]] = None) -> SyncConfig:
	"""Load and validate the YAML config at `path`.

	A missing file gives the defaults unless `required` is set.
	"""

	try:
		with path.open("r", encoding="utf-8") as f:
			data = yaml.safe_load(f) or {}
	except FileNotFoundError as e:
		if not required:
			return build_config({}, env=env)
		raise ConfigError(f"Config not found: {path}. Create one with: --init-config") from e
	except (OSError, yaml.YAMLError) as e:
		raise ConfigError(f"Failed to read config YAML: {path}") from e

	if not isinstance(data, dict):
		raise ConfigError("Config YAML must be a mapping (top-level object).")

	return build_config(data, env=env)
