"""
Pydantic models for the Rancher v1 API responses consumed by the application.

Every payload is validated here, at the boundary, so the core never walks raw
dictionaries.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rancher_configs.exceptions import MalformedResponseError

REGISTERING_STATE = "registering"


class RegistrationToken(BaseModel):
    """A registration token as returned by the create and list endpoints."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    state: Optional[str] = None
    token: Optional[str] = None
    registration_url: Optional[str] = Field(default=None, alias="registrationUrl")
    command: Optional[str] = None

    @property
    def is_registering(self) -> bool:
        return (self.state or "").lower() == REGISTERING_STATE


class RegistrationTokenList(BaseModel):
    """The collection envelope of `/v1/registrationTokens`."""

    model_config = ConfigDict(extra="allow")

    data: list[RegistrationToken] = Field(default_factory=list)

    def find(self, name: str) -> Optional[RegistrationToken]:
        """Returns the first token carrying `name`, or None."""
        for entry in self.data:
            if entry.name == name:
                return entry
        return None


class Host(BaseModel):
    """A host descriptor from `/v1/hosts`. Unknown fields are preserved."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    account_id: Optional[str] = Field(default=None, alias="accountId")
    hostname: Optional[str] = None
    name: Optional[str] = None
    state: Optional[str] = None
    physical_host_id: Optional[str] = Field(default=None, alias="physicalHostId")

    @property
    def project_id(self) -> Optional[str]:
        """The project (environment) the host belongs to."""
        return self.account_id

    @property
    def display_name(self) -> str:
        return self.name or self.hostname or self.id


class HostList(BaseModel):
    """The collection envelope of `/v1/hosts`."""

    model_config = ConfigDict(extra="allow")

    data: list[Host] = Field(default_factory=list)


def parse_response(model: type[BaseModel], payload: Any, endpoint: str) -> Any:
    """
    Validates a decoded JSON payload against `model`.

    Raises:
        MalformedResponseError: If the payload does not fit the schema.
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponseError(
            f"Response from '{endpoint}' does not match {model.__name__}: {e}"
        ) from e
