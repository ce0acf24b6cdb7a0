"""Git access through the ``git`` executable.

Two primitives are exposed to the core: ``resolve_ref`` turns a pin into a
full commit id, and ``checkout`` materializes a commit in a cache directory.
Any failure of the executable is reported as ``SourceUnreachable``.
"""

from __future__ import annotations

import hashlib
import logging
import re
import subprocess
from pathlib import Path

from flexlock.core.requirements import Pin, PinKind
from flexlock.exceptions import SourceUnreachable

logger = logging.getLogger(__name__)

_FULL_SHA_RE = re.compile(r"^[0-9a-f]{40}$")


class GitClient:
    """Resolve pins and check out commits with the ``git`` command.

    Args:
        cache_dir: Directory under which checkouts are kept, one per
            ``(url, commit)`` pair.
        executable: Name or path of the git binary.
    """

    def __init__(self, cache_dir: Path, executable: str = "git") -> None:
        self.cache_dir = cache_dir
        self.executable = executable

    def resolve_ref(self, url: str, pin: Pin) -> str:
        """Return the full commit id *pin* designates in the repository at *url*.

        Raises:
            SourceUnreachable: If git fails or the pin does not exist.
        """
        if pin.kind is PinKind.REF:
            if _FULL_SHA_RE.match(pin.value):
                return pin.value
            mirror = self._mirror(url)
            return self._run(["rev-parse", "--verify", f"{pin.value}^{{commit}}"], cwd=mirror)
        if pin.kind is PinKind.NONE:
            patterns = ["HEAD"]
        elif pin.kind is PinKind.BRANCH:
            patterns = [f"refs/heads/{pin.value}"]
        else:
            # Annotated tags list the peeled commit as "<tag>^{}".
            patterns = [f"refs/tags/{pin.value}^{{}}", f"refs/tags/{pin.value}"]
        output = self._run(["ls-remote", url, *patterns])
        refs = {
            ref: sha
            for sha, ref in (
                line.split("\t", 1) for line in output.splitlines() if "\t" in line
            )
        }
        for pattern in patterns:
            if pattern in refs:
                logger.debug("Resolved %s %s to %s", url, pin, refs[pattern])
                return refs[pattern]
        raise SourceUnreachable(f"Cannot resolve {pin} in {url}")

    def checkout(self, url: str, ref: str) -> Path:
        """Return a directory holding the tree of commit *ref*.

        Raises:
            SourceUnreachable: If cloning or checking out fails.
        """
        target = self.cache_dir / f"{_url_digest(url)}-{ref[:12]}"
        if target.is_dir():
            return target
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Checking out %s at %s", url, ref[:12])
        self._run(["clone", "--quiet", "--no-checkout", url, str(target)])
        self._run(["checkout", "--quiet", "--detach", ref], cwd=target)
        return target

    def _mirror(self, url: str) -> Path:
        mirror = self.cache_dir / f"{_url_digest(url)}.git"
        if mirror.is_dir():
            self._run(["fetch", "--quiet", "--all"], cwd=mirror)
        else:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._run(["clone", "--quiet", "--bare", url, str(mirror)])
        return mirror

    def _run(self, args: list[str], cwd: Path | None = None) -> str:
        try:
            proc = subprocess.run(
                [self.executable, *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as exc:
            raise SourceUnreachable(f"git executable not found: {self.executable}") from exc
        except subprocess.CalledProcessError as exc:
            message = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
            raise SourceUnreachable(f"git {args[0]} failed: {message}") from exc
        return proc.stdout.strip()


def _url_digest(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:12]
