import base64
import unittest
from unittest.mock import MagicMock

import requests

from fairspin_be.adapters.mock_adapter import MockChainAdapter
from fairspin_be.adapters.registry import create_adapter, create_adapter_from_config
from fairspin_be.adapters.voi_adapter import VoiChainAdapter
from fairspin_be.exceptions import ChainQueryException, SubmissionFailedException
from fairspin_be.utils.bet_key import encode_bet_key
from fairspin_be.utils.game_config import get_game_config
from fairspin_be.utils.tx_logs import ARC4_RETURN_PREFIX

BET = 1_000_000
TX_ID = 'Q' * 52


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    return response


class TestVoiChainAdapter(unittest.TestCase):
    def setUp(self):
        self.config = get_game_config('5reel')
        self.session = MagicMock()
        self.session.headers = {}
        self.adapter = VoiChainAdapter(
            self.config, node_url='https://node.test/', indexer_url='https://idx.test',
            api_token='secret', session=self.session
        )

    def test_api_token_header(self):
        self.assertEqual(self.session.headers['X-Algo-API-Token'], 'secret')

    def test_current_block(self):
        self.session.get.return_value = make_response(payload={'last-round': 4242})
        self.assertEqual(self.adapter.get_current_block(), 4242)
        self.session.get.assert_called_once_with('https://node.test/v2/status', params=None, timeout=10)

    def test_block_seed_keeps_last_32_bytes(self):
        raw = b'\xff' * 4 + bytes(range(32))
        self.session.get.return_value = make_response(
            payload={'block': {'seed': base64.b64encode(raw).decode('ascii')}}
        )
        self.assertEqual(self.adapter.get_block_seed(100), bytes(range(32)))

    def test_block_without_seed(self):
        self.session.get.return_value = make_response(payload={'block': {}})
        with self.assertRaises(ChainQueryException):
            self.adapter.get_block_seed(100)

    def test_short_seed(self):
        self.session.get.return_value = make_response(
            payload={'block': {'seed': base64.b64encode(b'short').decode('ascii')}}
        )
        with self.assertRaises(ChainQueryException):
            self.adapter.get_block_seed(100)

    def test_lookup_missing_transaction(self):
        self.session.get.return_value = make_response(status_code=404)
        self.assertIsNone(self.adapter.lookup_transaction(TX_ID))

    def test_lookup_transaction(self):
        tx = {'id': TX_ID, 'confirmed-round': 7}
        self.session.get.return_value = make_response(payload={'transaction': tx})
        self.assertEqual(self.adapter.lookup_transaction(TX_ID), tx)
        args, _ = self.session.get.call_args
        self.assertEqual(args[0], f'https://idx.test/v2/transactions/{TX_ID}')

    def test_server_error(self):
        self.session.get.return_value = make_response(status_code=503)
        with self.assertRaises(ChainQueryException) as ctx:
            self.adapter.get_current_block()
        self.assertEqual(ctx.exception.details['status_code'], 503)

    def test_network_error(self):
        self.session.get.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(ChainQueryException):
            self.adapter.get_balance('ADDR')

    def test_balance(self):
        self.session.get.return_value = make_response(payload={'amount': 123456})
        self.assertEqual(self.adapter.get_balance('ADDR'), 123456)

    def test_submit_without_submitter(self):
        with self.assertRaises(SubmissionFailedException):
            self.adapter.submit_spin(BET, 5, 'ADDR')
        with self.assertRaises(SubmissionFailedException):
            self.adapter.claim_spin('00' * 56, 10, BET, 5)

    def test_submit_spin_reads_bet_key_from_confirmation(self):
        bet_key = encode_bet_key(bytes(32), BET, 4, 9)
        submitter = MagicMock()
        submitter.submit_spin.return_value = {
            'id': TX_ID,
            'confirmed-round': 500,
            'logs': [base64.b64encode(ARC4_RETURN_PREFIX + bet_key).decode('ascii')],
        }
        self.adapter.transaction_submitter = submitter

        submitted = self.adapter.submit_spin(BET, 5, 'ADDR')

        self.assertEqual(submitted.bet_key, bet_key.hex())
        self.assertEqual(submitted.tx_id, TX_ID)
        self.assertEqual((submitted.submit_block, submitted.claim_block), (500, 501))
        args = submitter.submit_spin.call_args[0]
        self.assertEqual(args[0], BET)
        self.assertEqual(args[1], 4)
        self.assertEqual(args[3], 5 * BET + self.config.spin_fee)

    def test_submit_spin_without_bet_key(self):
        submitter = MagicMock()
        submitter.submit_spin.return_value = {'id': TX_ID, 'confirmed-round': 500, 'logs': []}
        self.adapter.transaction_submitter = submitter
        with self.assertRaises(SubmissionFailedException):
            self.adapter.submit_spin(BET, 5, 'ADDR')

    def test_submitter_error_is_wrapped(self):
        submitter = MagicMock()
        submitter.submit_spin.side_effect = RuntimeError("wallet closed")
        self.adapter.transaction_submitter = submitter
        with self.assertRaises(SubmissionFailedException):
            self.adapter.submit_spin(BET, 5, 'ADDR')


class TestAdapterRegistry(unittest.TestCase):
    def setUp(self):
        self.config = get_game_config('5reel')

    def test_create_by_name(self):
        self.assertIsInstance(create_adapter('mock', self.config), MockChainAdapter)

    def test_unknown_name(self):
        with self.assertRaises(ValueError):
            create_adapter('solana', self.config)

    def test_from_config_mapping(self):
        adapter = create_adapter_from_config({
            'CHAIN_ADAPTER': 'voi',
            'CHAIN_NODE_URL': 'https://node.test',
            'CHAIN_INDEXER_URL': 'https://idx.test',
            'CHAIN_API_TOKEN': None,
            'CHAIN_REQUEST_TIMEOUT': 3.0,
        }, self.config)
        self.assertIsInstance(adapter, VoiChainAdapter)
        self.assertEqual(adapter.node_url, 'https://node.test')
        self.assertEqual(adapter.timeout, 3.0)

    def test_from_config_defaults_to_mock(self):
        self.assertIsInstance(create_adapter_from_config({}, self.config), MockChainAdapter)


class TestMockChainAdapter(unittest.TestCase):
    def setUp(self):
        self.config = get_game_config('5reel')
        self.adapter = MockChainAdapter(self.config, auto_advance=False)

    def test_submit_debits_and_claim_pays(self):
        start = self.adapter.balance
        submitted = self.adapter.submit_spin(BET, 2, 'player-one')
        self.assertEqual(self.adapter.balance, start - 2 * BET - self.config.spin_fee)
        outcome = self.adapter.calculate_outcome_from_seed(submitted.bet_key, submitted.claim_block, BET, 2)
        confirmation = self.adapter.claim_spin(submitted.bet_key, submitted.claim_block, BET, 2)
        self.assertEqual(confirmation.payout, outcome.total_payout)
        self.assertEqual(self.adapter.balance, start - 2 * BET - self.config.spin_fee + outcome.total_payout)

    def test_double_claim_rejected(self):
        submitted = self.adapter.submit_spin(BET, 1, 'player-one')
        self.adapter.claim_spin(submitted.bet_key, submitted.claim_block, BET, 1)
        with self.assertRaises(ChainQueryException):
            self.adapter.claim_spin(submitted.bet_key, submitted.claim_block, BET, 1)

    def test_index_value_increments(self):
        first = self.adapter.submit_spin(BET, 1, 'player-one')
        second = self.adapter.submit_spin(BET, 1, 'player-one')
        self.assertNotEqual(first.bet_key, second.bet_key)
        self.assertNotEqual(first.tx_id, second.tx_id)

    def test_seed_override(self):
        self.adapter.set_block_seed(1001, bytes(range(32)))
        self.assertEqual(self.adapter.get_block_seed(1001), bytes(range(32)))
        self.assertNotEqual(self.adapter.get_block_seed(1002), bytes(range(32)))

    def test_height_only_moves_when_advanced(self):
        self.assertEqual(self.adapter.get_current_block(), 1000)
        self.assertEqual(self.adapter.get_current_block(), 1000)
        self.assertEqual(self.adapter.advance_blocks(2), 1002)


if __name__ == '__main__':
    unittest.main()
