"""Session script generator.

Renders a tree's change log into a bash script that drives the device's
configuration session API (``cli-shell-api``) and its ``my_*`` helpers.
"""
from typing import Iterable

from .schema import ChangeCommand

DEFAULT_SBINDIR = "/opt/vyatta/sbin"
DEFAULT_CLI_SHELL_API = "/bin/cli-shell-api"

# alias -> helper under $vyatta_sbindir
SESSION_ALIASES = {
    "SET": "my_set",
    "DELETE": "my_delete",
    "COPY": "my_copy",
    "MOVE": "my_move",
    "RENAME": "my_rename",
    "ACTIVATE": "my_activate",
    "DEACTIVATE": "my_deactivate",
    "COMMENT": "my_comment",
    "COMMIT": "my_commit",
    "DISCARD": "my_discard",
    "SAVE": "vyatta-save-config.pl",
}

SCRIPT_TEMPLATE = """#!/bin/bash
vyatta_sbindir={sbindir}
{aliases}
API={api}

function atexit() {{
    $API teardownSession
}}

trap atexit EXIT
trap 'exit 1' HUP INT TERM

session_env=$($API getSessionEnv $PPID)
echo $session_env
eval $session_env
$API setupSession

{commands}
$COMMIT
if [ $? -ne 0 ]; then
    echo "fail to commit"
    exit 1
fi
"""


class ScriptGenerator:
    """Generate a device session script from change log entries."""

    def __init__(
        self,
        sbindir: str = DEFAULT_SBINDIR,
        cli_shell_api: str = DEFAULT_CLI_SHELL_API,
    ):
        self.sbindir = sbindir
        self.cli_shell_api = cli_shell_api

    def render(self, changes: Iterable[ChangeCommand | str]) -> str:
        """
        Render the full session script.

        The teardown trap is installed before the session is opened, so the
        session is closed on normal exit, on a failed commit, and when the
        script is terminated by a signal.

        Args:
            changes: Change log entries (or pre-rendered ``$SET ...`` lines)
                in the order they must be executed

        Returns:
            Script text
        """
        lines = [
            c.render() if isinstance(c, ChangeCommand) else c
            for c in changes
        ]
        aliases = "\n".join(
            f"{alias}=${{vyatta_sbindir}}/{helper}"
            for alias, helper in SESSION_ALIASES.items()
        )
        return SCRIPT_TEMPLATE.format(
            sbindir=self.sbindir,
            aliases=aliases,
            api=self.cli_shell_api,
            commands="\n".join(lines),
        )
