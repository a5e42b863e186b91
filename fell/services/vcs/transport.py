"""Authentication and transport settings for remote git operations"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from fell.config import Config


@dataclass
class TransportConfig:
    """Environment handed to git for fetch, push and clone.

    The defaults keep fleet operations non-interactive: credentials come from
    the caller's SSH agent and host keys / TLS certificates are accepted
    without verification. Set ``accept_all_host_keys=False`` to restore
    git's normal host validation.
    """

    accept_all_host_keys: bool = True
    use_ssh_agent: bool = True
    ssh_command: Optional[str] = None
    extra_env: Dict[str, str] = field(default_factory=dict)
    ssh_auth_sock: Optional[str] = None

    @classmethod
    def from_config(cls, config: "Config") -> "TransportConfig":
        return cls(
            accept_all_host_keys=config.get("accept_all_host_keys", True),
            use_ssh_agent=config.get("use_ssh_agent", True),
        )

    def build_ssh_command(self) -> Optional[str]:
        """SSH command with the policy options, or None when git's own setting can stay.

        The options are appended to the caller's ``GIT_SSH_COMMAND`` when one
        is set, so per-host keys and wrappers keep working.
        """
        options = []
        if self.accept_all_host_keys:
            options += ["-o", "StrictHostKeyChecking=no", "-o", "UserKnownHostsFile=/dev/null"]
        if not self.use_ssh_agent:
            options += ["-o", "IdentityAgent=none"]
        if not options:
            return None
        base = self.ssh_command or os.environ.get("GIT_SSH_COMMAND") or "ssh"
        return " ".join([base, "-o", "BatchMode=yes"] + options)

    def env(self) -> Dict[str, str]:
        """Environment variables to set for a remote git command."""
        env = {"GIT_TERMINAL_PROMPT": "0"}
        ssh_command = self.build_ssh_command()
        if ssh_command:
            env["GIT_SSH_COMMAND"] = ssh_command
        if self.accept_all_host_keys:
            env["GIT_SSL_NO_VERIFY"] = "1"
        if self.use_ssh_agent:
            sock = self.ssh_auth_sock or os.environ.get("SSH_AUTH_SOCK")
            if sock:
                env["SSH_AUTH_SOCK"] = sock
        env.update(self.extra_env)
        return env
