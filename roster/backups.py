"""Database backups: dump executors plus the backup directory file set.

All file access goes through :func:`resolve_backup`, which only hands back
paths that live inside the configured backup directory.
"""
import logging
import os
import re
import sqlite3
import subprocess
from collections import namedtuple
from datetime import datetime
from pathlib import Path

from flask import current_app
from sqlalchemy.engine import make_url
from werkzeug.security import safe_join

from .errors import BackupFailed, InvalidInput, NotFound, SystemFailure
from .extensions import db

logger = logging.getLogger(__name__)

EXECUTOR_KEY = "roster.backup_executor"
BACKUP_SUFFIX = ".sql"

BackupFile = namedtuple("BackupFile", ["name", "size", "modified"])


def _discard(path):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


class BackupExecutor:
    """Writes a dump of the configured database to a file."""

    def dump(self, target):
        """Write the dump to ``target`` and return it, or raise BackupFailed."""
        raise NotImplementedError


class MysqldumpExecutor(BackupExecutor):
    def __init__(self, url, binary="mysqldump", timeout=300):
        self.url = make_url(url)
        self.binary = binary
        self.timeout = timeout

    def command(self):
        url = self.url
        cmd = [self.binary, "-h", url.host or "localhost", "-u", url.username or "root"]
        if url.port:
            cmd += ["-P", str(url.port)]
        cmd += ["--single-transaction", url.database]
        return cmd

    def dump(self, target):
        env = dict(os.environ)
        if self.url.password:
            # password goes through the environment, never argv
            env["MYSQL_PWD"] = self.url.password
        try:
            with open(target, "wb") as out:
                proc = subprocess.run(
                    self.command(), stdout=out, stderr=subprocess.PIPE,
                    env=env, timeout=self.timeout, check=False,
                )
        except (OSError, subprocess.SubprocessError) as exc:
            _discard(target)
            logger.error("Backup: Could not run %s - %s", self.binary, exc)
            raise BackupFailed() from exc

        if proc.returncode != 0:
            _discard(target)
            logger.error("Backup: Failed to create backup - Return code: %s - %s",
                         proc.returncode, proc.stderr.decode(errors="replace").strip())
            raise BackupFailed()
        return target


class SqliteDumpExecutor(BackupExecutor):
    def __init__(self, path):
        self.path = path

    def dump(self, target):
        if not self.path or not os.path.isfile(self.path):
            logger.error("Backup: SQLite database file not found: %s", self.path)
            raise BackupFailed()
        try:
            conn = sqlite3.connect(f"file:{self.path}?mode=ro", uri=True)
            try:
                with open(target, "w", encoding="utf-8") as out:
                    for line in conn.iterdump():
                        out.write(f"{line}\n")
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as exc:
            _discard(target)
            logger.error("Backup: SQLite dump failed - %s", exc)
            raise BackupFailed() from exc
        return target


def executor_for_url(url, config):
    url = make_url(url)
    backend = url.get_backend_name()
    if backend == "mysql":
        return MysqldumpExecutor(url, binary=config["MYSQLDUMP_BIN"],
                                 timeout=config["BACKUP_TIMEOUT"])
    if backend == "sqlite":
        return SqliteDumpExecutor(url.database)
    return None


def get_backup_executor():
    executor = current_app.extensions.get(EXECUTOR_KEY)
    if executor is None:
        executor = executor_for_url(db.engine.url, current_app.config)
    return executor


def backup_dir():
    return Path(current_app.config["BACKUP_DIR"])


def database_name():
    url = db.engine.url
    name = url.database or "database"
    if url.get_backend_name() == "sqlite":
        name = Path(name).stem
    return re.sub(r"[^A-Za-z0-9_-]", "_", name) or "database"


def backup_filename(now=None):
    now = now or datetime.now()
    return f"{database_name()}_backup_{now:%Y-%m-%d_%H-%M-%S}{BACKUP_SUFFIX}"


def reserve_backup_path(directory, name, attempts=100):
    """Create an empty file for ``name`` without touching existing backups.

    Backups taken within the same second get ``_1``, ``_2``... appended to
    the stem.
    """
    stem = name[:-len(BACKUP_SUFFIX)]
    for n in range(attempts):
        candidate = directory / (name if n == 0 else f"{stem}_{n}{BACKUP_SUFFIX}")
        try:
            with open(candidate, "xb"):
                return candidate
        except FileExistsError:
            continue
    logger.error("Backup: No free file name for %s after %d attempts", name, attempts)
    raise BackupFailed()


def create_backup():
    """Dump the database into the backup directory and return the file name."""
    directory = backup_dir()
    executor = get_backup_executor()
    if executor is None:
        logger.error("Backup: No dump executor for database dialect %s",
                     db.engine.url.get_backend_name())
        raise BackupFailed()
    try:
        directory.mkdir(parents=True, exist_ok=True)
        target = reserve_backup_path(directory, backup_filename())
    except OSError as exc:
        logger.error("Backup: Cannot create backup file in %s - %s", directory, exc)
        raise BackupFailed() from exc

    try:
        executor.dump(target)
    except BackupFailed:
        _discard(target)
        raise
    if not target.is_file() or target.stat().st_size == 0:
        _discard(target)
        logger.error("Backup: Dump reported success but %s is missing or empty", target)
        raise BackupFailed()
    logger.info("Backup: Successfully created backup file: %s", target)
    return target.name


def list_backups():
    directory = backup_dir()
    if not directory.is_dir():
        return []
    files = []
    for entry in directory.iterdir():
        if entry.suffix == BACKUP_SUFFIX and entry.is_file():
            stat = entry.stat()
            files.append(BackupFile(entry.name, stat.st_size,
                                    datetime.fromtimestamp(stat.st_mtime)))
    files.sort(key=lambda f: f.modified, reverse=True)
    return files


def resolve_backup(name):
    """Map a requested file name to a path inside the backup directory.

    Raises InvalidInput for anything that is not a bare ``*.sql`` name or
    resolves outside the directory, and NotFound when no such file exists.
    """
    if (not name or "\x00" in name or "/" in name or "\\" in name
            or name in (".", "..") or not name.endswith(BACKUP_SUFFIX)):
        logger.warning("Backup: Rejected file name %r", (name or "")[:100])
        raise InvalidInput("Invalid file")

    base = backup_dir().resolve()
    joined = safe_join(str(base), name)
    if joined is None:
        logger.warning("Backup: Rejected file name %r", name[:100])
        raise InvalidInput("Invalid file")
    path = Path(joined).resolve()
    if base not in path.parents:
        logger.warning("Backup: %r resolves outside the backup directory", name[:100])
        raise InvalidInput("Invalid file")
    if not path.is_file():
        logger.warning("Backup: Attempted to access missing file: %s", name)
        raise NotFound("Invalid file")
    return path


def delete_backup(name):
    path = resolve_backup(name)
    try:
        path.unlink()
    except OSError as exc:
        logger.error("Backup: Failed to delete %s - %s", path, exc)
        raise SystemFailure("Failed to delete backup") from exc
    logger.info("Backup: Deleted backup file: %s", path.name)
    return path.name


def format_bytes(size, precision=2):
    units = ["B", "KB", "MB", "GB"]
    value = float(max(size, 0))
    power = 0
    while value >= 1024 and power < len(units) - 1:
        value /= 1024
        power += 1
    return f"{round(value, precision):g} {units[power]}"
