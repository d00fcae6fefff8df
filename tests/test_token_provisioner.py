import logging
import re

import pytest

from rancher_configs.core.token_provisioner import (
    TOKEN_NAME_ALPHABET,
    TokenProvisioner,
    generate_token_name,
)
from rancher_configs.exceptions import (
    EmptyTokenError,
    RegistrationError,
    TokenNotFoundError,
    TokenTimeoutError,
    UnexpectedResponseError,
)
from rancher_configs.models.config import PollPolicy


def test_generated_names_are_eight_hex_digits():
    for _ in range(200):
        name = generate_token_name()
        assert len(name) == 8
        assert re.fullmatch(r"[0-9a-f]{8}", name)


def test_generated_names_allow_repeated_digits(monkeypatch):
    monkeypatch.setattr(
        "rancher_configs.core.token_provisioner.random.choice", lambda seq: seq[3]
    )
    assert generate_token_name() == "33333333"
    assert set(TOKEN_NAME_ALPHABET) == set("0123456789abcdef")


async def test_acquire_token_returns_value_after_registration(rancher, provisioner):
    token = await provisioner.acquire_token("1a5", token_name="abc12345")

    assert token == "tok-1a5-abc12345"
    assert rancher.create_calls == [("1a5", "abc12345")]
    assert rancher.create_paths == ["/api/v1/projects/1a5/registrationTokens"]


async def test_acquire_token_generates_name_when_missing(rancher, provisioner):
    token = await provisioner.acquire_token("1a5")

    (project_id, name), = rancher.create_calls
    assert project_id == "1a5"
    assert re.fullmatch(r"[0-9a-f]{8}", name)
    assert token == f"tok-1a5-{name}"


async def test_polls_until_state_leaves_registering(rancher, provisioner):
    rancher.polls_before_active = 3

    await provisioner.acquire_token("1a5", token_name="abc12345")

    assert rancher.list_calls == 4


async def test_name_mismatch_raises_unexpected_response(rancher, provisioner):
    rancher.name_override = "other"

    with pytest.raises(UnexpectedResponseError, match="other"):
        await provisioner.acquire_token("1a5", token_name="abc12345")
    assert rancher.list_calls == 0


async def test_non_registering_initial_state_raises(rancher, provisioner):
    rancher.initial_state = "active"

    with pytest.raises(RegistrationError, match="active"):
        await provisioner.acquire_token("1a5", token_name="abc12345")
    assert rancher.list_calls == 0


async def test_registering_state_is_case_insensitive(rancher, provisioner):
    rancher.initial_state = "Registering"
    rancher.registering_label = "REGISTERING"
    rancher.polls_before_active = 2

    token = await provisioner.acquire_token("1a5", token_name="abc12345")

    assert token == "tok-1a5-abc12345"
    assert rancher.list_calls == 3


async def test_unexpected_final_state_still_ends_poll(rancher, provisioner, caplog):
    rancher.final_state = "error"

    with caplog.at_level(logging.WARNING, logger="rancher_configs"):
        token = await provisioner.acquire_token("1a5", token_name="abc12345")

    assert token == "tok-1a5-abc12345"
    assert rancher.list_calls == 2
    assert any("token_unexpected_state" in r.getMessage() for r in caplog.records)


async def test_empty_token_value_raises(rancher, provisioner):
    rancher.final_token = ""

    with pytest.raises(EmptyTokenError):
        await provisioner.acquire_token("1a5", token_name="abc12345")


async def test_token_missing_from_list_raises(rancher, provisioner):
    rancher.drop_tokens_from_list = True

    with pytest.raises(TokenNotFoundError):
        await provisioner.acquire_token("1a5", token_name="abc12345")


async def test_bounded_policy_gives_up(rancher, api_client, log_config):
    rancher.polls_before_active = 100
    provisioner = TokenProvisioner(
        api_client, PollPolicy(interval=0, max_attempts=3), log_config.build()
    )

    with pytest.raises(TokenTimeoutError):
        await provisioner.acquire_token("1a5", token_name="abc12345")
    assert rancher.list_calls == 3


async def test_timeout_is_a_registration_error(rancher, api_client, log_config):
    rancher.polls_before_active = 5
    provisioner = TokenProvisioner(
        api_client, PollPolicy(interval=0, max_attempts=1), log_config.build()
    )

    with pytest.raises(RegistrationError):
        await provisioner.acquire_token("1a5", token_name="abc12345")
