"""
Requests a registration token for a project and waits for it to become usable.
"""

import asyncio
import random
from typing import Optional

from rancher_configs.api.client import RancherAPIClient
from rancher_configs.exceptions import (
    EmptyTokenError,
    RegistrationError,
    TokenNotFoundError,
    TokenTimeoutError,
    UnexpectedResponseError,
)
from rancher_configs.models.config import PollPolicy
from rancher_configs.utils.structured_logger import EventLogger, default_logger

TOKEN_NAME_ALPHABET = "0123456789abcdef"
TOKEN_NAME_LENGTH = 8


def generate_token_name(length: int = TOKEN_NAME_LENGTH) -> str:
    """Draws `length` hex digits independently and uniformly, repeats allowed."""
    return "".join(random.choice(TOKEN_NAME_ALPHABET) for _ in range(length))


class TokenProvisioner:
    """
    Creates registration tokens and polls them out of the 'registering' state.

    Any state other than 'registering' ends the poll, including states that
    signal a failure on the server side. Those are logged but still returned
    as long as a token value is present.
    """

    def __init__(
        self,
        api_client: RancherAPIClient,
        poll_policy: Optional[PollPolicy] = None,
        logger: Optional[EventLogger] = None,
    ):
        self.api_client = api_client
        self.poll_policy = poll_policy or PollPolicy()
        self.logger = logger or default_logger()

    async def acquire_token(
        self, project_id: str, token_name: Optional[str] = None
    ) -> str:
        """
        Creates a registration token in `project_id` and returns its value once
        the server has finished registering it.

        Args:
            project_id: The project (environment) to create the token in.
            token_name: Name for the token; a random 8-digit hex name if omitted.

        Raises:
            UnexpectedResponseError: The server created a token with another name.
            RegistrationError: The new token did not start out as 'registering'.
            TokenTimeoutError: The poll policy ran out of attempts.
            EmptyTokenError: The registered token has no value.
        """
        name = token_name or generate_token_name()
        self.logger.verbose(
            "token_requested", project_id=project_id, token_name=name
        )

        created = await self.api_client.create_registration_token(project_id, name)
        if created.name != name:
            raise UnexpectedResponseError(
                f"Requested registration token '{name}' but the server "
                f"returned '{created.name}'."
            )
        if not created.is_registering:
            raise RegistrationError(
                f"Registration token '{name}' is in state '{created.state}', "
                "expected 'registering'."
            )

        token = await self._wait_until_registered(name)
        self.logger.info("token_acquired", project_id=project_id, token_name=name)
        return token

    async def _wait_until_registered(self, name: str) -> str:
        policy = self.poll_policy
        attempt = 0
        while True:
            attempt += 1
            if policy.max_attempts is not None and attempt > policy.max_attempts:
                raise TokenTimeoutError(
                    f"Registration token '{name}' was still registering after "
                    f"{policy.max_attempts} polls."
                )

            delay = policy.delay_for(attempt)
            if delay:
                await asyncio.sleep(delay)

            tokens = await self.api_client.list_registration_tokens()
            entry = tokens.find(name)
            if entry is None:
                raise TokenNotFoundError(
                    f"Registration token '{name}' is missing from the token list."
                )
            if entry.is_registering:
                self.logger.debug("token_poll", token_name=name, attempt=attempt)
                continue
            break

        if (entry.state or "").lower() != "active":
            self.logger.warning(
                "token_unexpected_state", token_name=name, state=entry.state
            )
        if not entry.token:
            raise EmptyTokenError(
                f"Registration token '{name}' left state 'registering' "
                f"('{entry.state}') without a token value."
            )
        return entry.token
