"""Tests for quote and wallet-service response parsing and key lookup."""
import pytest

from chain_connector_base import QuoteUnavailableError, WalletServiceError
from evm_connector import parse_balance, parse_quotes, resolve_private_key

QUOTES_PAYLOAD = {
    "quotes": [
        {"route": "stargate/v2/bus", "error": {"message": "amount too small"}},
        {
            "route": "stargate/v2/taxi",
            "srcAmount": "1000000",
            "dstAmount": "990000",
            "steps": [
                {
                    "type": "approve",
                    "chainKey": "flow",
                    "transaction": {"to": "0x2222222222222222222222222222222222222222", "data": "0x095ea7b3", "from": "0x1"},
                },
                {
                    "type": "bridge",
                    "chainKey": "flow",
                    "transaction": {"to": "0x3333333333333333333333333333333333333333", "data": "0xc7c7f5b3", "value": "0x2386f26fc10000"},
                },
            ],
        },
    ]
}


def test_parse_quotes_skips_errored_quotes():
    quotes = parse_quotes(QUOTES_PAYLOAD)

    assert len(quotes) == 1
    quote = quotes[0]
    assert quote.route == "stargate/v2/taxi"
    assert quote.src_amount == 1_000_000
    assert [s.type for s in quote.steps] == ["approve", "bridge"]
    assert quote.steps[0].value == 0
    assert quote.steps[1].value == 10_000_000_000_000_000
    assert quote.steps[1].chain_key == "flow"


def test_parse_quotes_skips_malformed_steps():
    payload = {"quotes": [{"route": "x", "steps": [{"type": "bridge", "transaction": {}}]}]}
    assert parse_quotes(payload) == []


def test_parse_quotes_requires_list():
    with pytest.raises(QuoteUnavailableError):
        parse_quotes({"error": "bad request"})


def test_parse_balance_shapes(portfolio):
    asset = portfolio.primary
    assert parse_balance({"raw_value": "1500000"}, asset) == 1_500_000
    assert parse_balance({"balance": 42}, asset) == 42
    assert parse_balance({"balances": [{"raw_value": "7"}]}, asset) == 7
    assert parse_balance({"balances": []}, asset) == 0


@pytest.mark.parametrize("payload", [{}, {"balance": "abc"}, {"amount": -1}, {"balances": ["x"]}])
def test_parse_balance_rejects_invalid(portfolio, payload):
    with pytest.raises(WalletServiceError):
        parse_balance(payload, portfolio.primary)


def test_private_key_per_wallet_takes_precedence(monkeypatch):
    monkeypatch.setenv("WALLET_PRIVATE_KEY", "0xshared")
    monkeypatch.setenv("WALLET_PRIVATE_KEY_CL1_WALLET", "0xspecific")

    assert resolve_private_key("cl1-wallet") == "0xspecific"
    assert resolve_private_key("other") == "0xshared"


def test_missing_private_key(monkeypatch):
    monkeypatch.delenv("WALLET_PRIVATE_KEY", raising=False)
    with pytest.raises(WalletServiceError):
        resolve_private_key("nobody")
