"""Shared data types for the DigitalOcean provisioner."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Credentials:
    """DigitalOcean v1 API credentials."""

    client_id: str
    api_key: str

    def as_params(self) -> dict:
        return {"client_id": self.client_id, "api_key": self.api_key}


@dataclass(frozen=True)
class CatalogEntry:
    """A region, size or image as published by the provider."""

    id: str
    name: str


@dataclass
class InstanceState:
    """State carried between create and destroy.

    Either empty or holding both ``server_id`` and ``hostname`` once a
    create has completed. A failed create may leave ``server_id`` alone so
    destroy can still reclaim the droplet.
    """

    server_id: str | None = None
    hostname: str | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "InstanceState":
        data = data or {}
        server_id = data.get("server_id")
        return cls(
            server_id=str(server_id) if server_id is not None else None,
            hostname=data.get("hostname"),
        )

    def to_dict(self) -> dict:
        """Only populated keys are emitted."""
        data = {}
        if self.server_id is not None:
            data["server_id"] = self.server_id
        if self.hostname is not None:
            data["hostname"] = self.hostname
        return data

    def clear(self):
        self.server_id = None
        self.hostname = None

    @property
    def is_empty(self) -> bool:
        return self.server_id is None and self.hostname is None
