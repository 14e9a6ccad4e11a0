"""Git URL rewrite rules that authenticate fetches against a private server.

``go get`` shells out to ``git``; writing ``insteadOf`` rules into the system
gitconfig makes every ``https://`` and ``http://`` URL on the server carry a
personal access token without exposing it on command lines.
"""

from __future__ import annotations

import typing as typ

from mirrorsync.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)


def render_git_credentials(token: str, server: str) -> list[str]:
    """Return gitconfig lines rewriting ``server`` URLs to carry ``token``.

    Examples
    --------
    >>> render_git_credentials("t0k", "git.example.com")[0]
    '[url "https://t0k@git.example.com"]'

    """
    lines: list[str] = []
    for scheme in ("https", "http"):
        lines.append(f'[url "{scheme}://{token}@{server}"]')
        lines.append(f"        insteadOf = {scheme}://{server}")
    return lines


def write_git_credentials(path: Path, token: str, server: str) -> int:
    """Overwrite ``path`` with credential rewrite rules.

    Returns the number of lines written; nothing is written and 0 is returned
    when ``token`` or ``server`` is empty.
    """
    if not token or not server:
        return 0

    log_info(logger, "Setting up access token (length %d) for %s", len(token), server)
    lines = render_git_credentials(token, server)
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    log_info(logger, "Wrote %d lines to %s", len(lines), path)
    return len(lines)
