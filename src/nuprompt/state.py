from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import tempfile

log = logging.getLogger(__name__)

#: Name of the scratch directory created under :envvar:`XDG_RUNTIME_DIR` or
#: the system temporary directory
STATE_DIRNAME = "nuprompt"


@dataclass
class SessionStore:
    """
    A tiny keyed store holding the start time of the last command run in each
    shell session.  Each session (identified by the shell's process ID) gets
    its own file in ``directory``, so the pre-execution and post-execution
    hooks, which run in separate processes, can find each other's data without
    any coordination.

    Records are overwritten, never appended, and each record can be read back
    at most once.
    """

    directory: Path

    @classmethod
    def default(cls, env: Mapping[str, str] | None = None) -> SessionStore:
        """
        Return a store in the default location for the current user:
        :envvar:`NUPROMPT_STATE_DIR` if set, else ``nuprompt/`` under
        :envvar:`XDG_RUNTIME_DIR` if set, else ``nuprompt-{uid}/`` under the
        system temporary directory
        """
        if env is None:
            env = os.environ
        if d := env.get("NUPROMPT_STATE_DIR"):
            return cls(Path(d))
        elif d := env.get("XDG_RUNTIME_DIR"):
            return cls(Path(d, STATE_DIRNAME))
        else:
            return cls(Path(tempfile.gettempdir(), f"{STATE_DIRNAME}-{os.getuid()}"))

    def slot(self, session_id: int) -> Path:
        """Return the path of the file holding the record for ``session_id``"""
        return self.directory / f"{session_id}.start"

    def record_start(self, session_id: int, started_at: int) -> None:
        """
        Store ``started_at`` (a timestamp in nanoseconds) as the start time of
        the current command in session ``session_id``, replacing any previous
        record.

        The timestamp is written to a temporary file that is then renamed over
        the session's slot, so readers see either the old record or the new
        one and never a partial write.
        """
        self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd, tmpname = tempfile.mkstemp(
            dir=self.directory, prefix=f".{session_id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(f"{started_at}\n")
            os.replace(tmpname, self.slot(session_id))
        except BaseException:
            discard(Path(tmpname))
            raise
        log.debug("Recorded start time %d for session %d", started_at, session_id)

    def read_and_clear(self, session_id: int) -> int | None:
        """
        Return the start time recorded for session ``session_id`` and delete
        the record.  If there is no record, or it cannot be read, or it does
        not contain a valid timestamp, return `None`.

        The record is first claimed by renaming it to a name private to this
        process, so two concurrent readers can never both consume it.
        """
        slot = self.slot(session_id)
        claimed = slot.with_name(f".{slot.name}.{os.getpid()}.claimed")
        try:
            slot.replace(claimed)
        except FileNotFoundError:
            log.debug("No start time recorded for session %d", session_id)
            return None
        except OSError as e:
            log.debug("Could not claim %s: %s", slot, e)
            return None
        try:
            raw = claimed.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            log.debug("Could not read %s: %s", claimed, e)
            return None
        finally:
            discard(claimed)
        try:
            started_at = int(raw)
        except ValueError:
            log.debug("Corrupt start time for session %d: %r", session_id, raw)
            return None
        if started_at < 0:
            log.debug("Corrupt start time for session %d: %r", session_id, raw)
            return None
        return started_at


def discard(path: Path) -> None:
    """Delete ``path`` if possible, ignoring any errors"""
    try:
        path.unlink()
    except OSError as e:
        if not isinstance(e, FileNotFoundError):
            log.debug("Could not delete %s: %s", path, e)
