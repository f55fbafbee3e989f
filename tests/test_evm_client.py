"""Tests for EVM transaction submission against a stubbed provider."""
import pytest
from web3.exceptions import TransactionNotFound

from chain_connector_base import ChainConnectionError, QuoteStep, TransferFailedError
from evm_connector import EVMClient

PRIVATE_KEY = "0x" + "11" * 32
TX_HASH = bytes.fromhex("ab" * 32)


class FakeEth:
    def __init__(self, status=1, receipt_error=None):
        self.status = status
        self.receipt_error = receipt_error
        self.sent = []

    @property
    def gas_price(self):
        return self._gas_price()

    async def _gas_price(self):
        return 1_000_000_000

    async def get_transaction_count(self, address, block_identifier):
        return 7

    async def send_raw_transaction(self, raw):
        self.sent.append(raw)
        return TX_HASH

    async def wait_for_transaction_receipt(self, tx_hash, timeout):
        if self.receipt_error is not None:
            raise self.receipt_error
        return {'status': self.status, 'blockNumber': 123}

    async def get_transaction_receipt(self, tx_hash):
        if self.receipt_error is not None:
            raise self.receipt_error
        return {'status': self.status, 'blockNumber': 123}

    def contract(self, address, abi):
        raise ConnectionError("rpc unreachable")


class FakeWeb3:
    def __init__(self, eth):
        self.eth = eth


def _client(config, eth):
    client = EVMClient(config=config)
    client._providers["flow"] = FakeWeb3(eth)
    return client


def _step():
    return QuoteStep(type="bridge", chain_key="flow", to="0x3333333333333333333333333333333333333333", value=5)


@pytest.mark.asyncio
async def test_send_transaction_returns_hash(config):
    eth = FakeEth(status=1)
    client = _client(config, eth)

    tx_hash = await client.send_transaction(_step(), PRIVATE_KEY)

    assert tx_hash == "0x" + "ab" * 32
    assert len(eth.sent) == 1


@pytest.mark.asyncio
async def test_reverted_transaction_raises_with_hash(config):
    client = _client(config, FakeEth(status=0))

    with pytest.raises(TransferFailedError) as exc_info:
        await client.send_transaction(_step(), PRIVATE_KEY)

    assert exc_info.value.transaction_hashes == ["0x" + "ab" * 32]


@pytest.mark.asyncio
async def test_balance_read_error_is_wrapped(config, wallet):
    client = _client(config, FakeEth())

    with pytest.raises(ChainConnectionError):
        await client.get_token_balance(wallet, config.portfolio.secondary)


@pytest.mark.asyncio
async def test_unknown_chain(config):
    client = EVMClient(config=config)

    with pytest.raises(ChainConnectionError):
        await client.send_transaction(QuoteStep(chain_key="solana", to="0x0"), PRIVATE_KEY)


@pytest.mark.asyncio
async def test_receipt_polling_error_keeps_broadcast_hash(config):
    eth = FakeEth(receipt_error=ConnectionError("rpc dropped while polling receipt"))
    client = _client(config, eth)

    with pytest.raises(TransferFailedError) as exc_info:
        await client.send_transaction(_step(), PRIVATE_KEY)

    assert len(eth.sent) == 1
    assert exc_info.value.transaction_hashes == ["0x" + "ab" * 32]
    assert "rpc dropped" in str(exc_info.value)


@pytest.mark.asyncio
@pytest.mark.parametrize("status, expected", [(1, "confirmed"), (0, "reverted")])
async def test_transaction_status_from_receipt(config, status, expected):
    client = _client(config, FakeEth(status=status))

    result = await client.get_transaction_status("flow", "0xabc")

    assert result == {'transactionHash': "0xabc", 'chain': "flow", 'status': expected, 'blockNumber': 123}


@pytest.mark.asyncio
async def test_unknown_transaction_is_pending(config):
    client = _client(config, FakeEth(receipt_error=TransactionNotFound("not found")))

    result = await client.get_transaction_status("flow", "0xabc")

    assert result['status'] == "pending"
    assert result['blockNumber'] is None


@pytest.mark.asyncio
async def test_transaction_status_rpc_error(config):
    client = _client(config, FakeEth(receipt_error=ConnectionError("rpc unreachable")))

    with pytest.raises(ChainConnectionError):
        await client.get_transaction_status("flow", "0xabc")
