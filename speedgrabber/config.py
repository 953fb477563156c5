"""
Configuration for scan and transfer runs.

Immutable dataclasses validated up front. Only ``RunConfig.from_env`` reads
the process environment, and nothing here writes to it.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from .errors import ConfigError
from .models import TransferMode

ENV_PREFIX = "SPEEDGRABBER_"

EXECUTORS = ("thread", "process")

DEFAULT_CONCURRENCY = 5
DEFAULT_FILE_TIMEOUT = 60.0        # per file, seconds
DEFAULT_FOLDER_TIMEOUT = 300.0     # per recursive folder copy
DEFAULT_ROUND_TIMEOUT = 600.0


def default_worker_count() -> int:
    """Available parallelism minus one (the coordinator), at least 1."""
    return max(1, (os.cpu_count() or 1) - 1)


@dataclass(frozen=True)
class ScanConfig:
    """Immutable configuration for the directory walk."""
    root: Path
    workers: Optional[int] = None
    executor: str = "thread"
    store_files: bool = True
    progress_interval: float = 1.0

    @property
    def worker_count(self) -> int:
        return self.workers if self.workers is not None else default_worker_count()

    def validate(self) -> None:
        if not str(self.root):
            raise ConfigError("scan root must not be empty")
        if self.workers is not None and self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")
        if self.executor not in EXECUTORS:
            raise ConfigError(f"executor must be one of {EXECUTORS}, got {self.executor!r}")
        if self.progress_interval < 0:
            raise ConfigError("progress_interval must be >= 0")


@dataclass(frozen=True)
class TransferConfig:
    """Immutable configuration for the upload scheduler."""
    destination: str
    mode: TransferMode = TransferMode.FILES
    concurrency: int = DEFAULT_CONCURRENCY
    check_existing: bool = False
    item_timeout: Optional[float] = None
    round_timeout: float = DEFAULT_ROUND_TIMEOUT
    cancel_on_round_timeout: bool = True
    release_settled: bool = False
    collect_between_rounds: bool = False

    @property
    def effective_item_timeout(self) -> float:
        """Explicit timeout, or the per-mode default."""
        if self.item_timeout is not None:
            return self.item_timeout
        if self.mode is TransferMode.FOLDERS:
            return DEFAULT_FOLDER_TIMEOUT
        return DEFAULT_FILE_TIMEOUT

    def validate(self) -> None:
        if not self.destination or not self.destination.strip():
            raise ConfigError("destination is required for upload")
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.item_timeout is not None and self.item_timeout <= 0:
            raise ConfigError("item_timeout must be > 0")
        if self.round_timeout <= 0:
            raise ConfigError("round_timeout must be > 0")


@dataclass(frozen=True)
class RunConfig:
    """Full run: scan, then upload when ``transfer`` is set."""
    scan: ScanConfig
    transfer: Optional[TransferConfig] = None
    release_after_upload: bool = False

    @property
    def upload_enabled(self) -> bool:
        return self.transfer is not None

    def validate(self) -> None:
        self.scan.validate()
        if self.transfer is not None:
            self.transfer.validate()

    @classmethod
    def from_env(cls, root, environ: Optional[Mapping[str, str]] = None,
                 env_file: Optional[Path] = None) -> "RunConfig":
        """
        Build a config from ``SPEEDGRABBER_*`` variables.

        Values from ``env_file`` act as defaults; ``environ`` (the process
        environment when omitted) wins on conflicts. Upload is enabled when
        SPEEDGRABBER_DESTINATION is set.
        """
        env: Dict[str, str] = read_env_file(env_file) if env_file is not None else {}
        env.update(os.environ if environ is None else environ)

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value is not None and value.strip() else None

        workers = _parse_int(get("WORKERS"), "WORKERS")
        scan = ScanConfig(
            root=Path(root),
            workers=workers,
            executor=get("EXECUTOR") or "thread",
        )

        destination = get("DESTINATION")
        transfer = None
        if destination:
            mode_name = (get("MODE") or TransferMode.FILES.value).lower()
            try:
                mode = TransferMode(mode_name)
            except ValueError as exc:
                raise ConfigError(f"unknown transfer mode: {mode_name}") from exc

            transfer = TransferConfig(
                destination=destination,
                mode=mode,
                concurrency=_parse_int(get("CONCURRENCY"), "CONCURRENCY") or DEFAULT_CONCURRENCY,
                check_existing=_parse_bool(get("CHECK_EXISTING")),
                item_timeout=_parse_float(get("ITEM_TIMEOUT"), "ITEM_TIMEOUT"),
                round_timeout=_parse_float(get("ROUND_TIMEOUT"), "ROUND_TIMEOUT") or DEFAULT_ROUND_TIMEOUT,
            )

        return cls(scan=scan, transfer=transfer)


def _parse_int(value: Optional[str], name: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}") from exc


def _parse_float(value: Optional[str], name: str) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be a number, got {value!r}") from exc


def _parse_bool(value: Optional[str]) -> bool:
    return value is not None and value.lower() in {"1", "true", "yes", "on"}


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def _parse_env_line(line: str) -> Optional[Tuple[str, str]]:
    """One ``[export ]KEY=VALUE`` line, or None for blanks, comments and junk."""
    line = line.strip()
    if line.startswith("export "):
        line = line[7:].lstrip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, _, value = line.partition("=")
    key = key.strip()
    if not key:
        return None
    return key, _unquote(value.strip())


def read_env_file(path: Path) -> Dict[str, str]:
    """
    Parse a ``.env`` file into a dict.

    The process environment is left untouched; pass the result (or the path,
    via ``RunConfig.from_env(env_file=...)``) to build a config.
    """
    path = Path(path)
    if not path.is_file():
        reason = "not found" if not path.exists() else "is not a file"
        raise ConfigError(f"env file {reason}: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"could not read env file {path}: {exc}") from exc

    return dict(pair for pair in map(_parse_env_line, content.splitlines()) if pair)
