"""Identity of the actor making a configuration change."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Client:
    """The actor behind a change, recorded in the audit trail.

    Attributes:
        username: Authenticated username, or "(system)" for internal operations
        ip_address: Source address of the request
    """

    username: str = "(system)"
    ip_address: str = "127.0.0.1"

    def __str__(self) -> str:
        return f"{self.username}@{self.ip_address}"


SYSTEM_CLIENT = Client()
