# ovn/tests/unit/test_ledger_balance_validator.py
'''
Test Suite para el libro mayor de tokens fungibles (tm_tokendemo):
    Acuñación, transferencias balanceadas y veto de transacciones desbalanceadas.

    Functions::
        test_mint_is_exempt(): Un output de acuñación se admite sin inputs.
        test_transfer_of_minted_token(): El id '<txid>.<vout>' consume la acuñación.
        test_unbalanced_transfer_is_vetoed(): Ningún output admitido, ningún input retenido.
        test_split_and_merge(): Varias entradas/salidas del mismo tokenId.
        test_input_only_is_vetoed(): Un input retenido sin salidas desbalancea el libro.
        test_unretained_inputs_do_not_count(): Solo cuentan los inputs de previous_coins.
'''

import sys
import os
import unittest

# --- AJUSTE DE RUTA ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(current_dir, '../../..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import AdmissionContext
from ovn.core.models.admission import RejectionReason
from ovn.core.protocols.token_demo import TokenDemoPolicy
from ovn.core.scripting.pushdrop import PushDrop
from ovn.core.services.signature_linkage_verifier import SignatureLinkageVerifier
from ovn.core.validators.admission_engine import AdmissionEngine
from ovn.core.validators.ledger_balance_validator import LedgerBalanceValidator, TokenFields
from ovn.tests.mocks.overlay_fixtures import make_signer, make_transaction, p2pkh, spend_inputs, token_script

MINT = ProtocolConstants.MINT_SENTINEL

class TestLedgerBalance(unittest.TestCase):

    def setUp(self):
        self.owner = make_signer("token-owner")
        self.engine = AdmissionEngine(TokenDemoPolicy())

    def _mint(self, amount: int, label: str = "mint"):
        return make_transaction([token_script(self.owner, MINT, amount)], label=label)

    def test_mint_is_exempt(self):
        mint = self._mint(100)
        result = self.engine.evaluate(mint)
        self.assertEqual(result.outputs_to_admit, [0])
        self.assertEqual(result.coins_to_retain, [])

    def test_transfer_of_minted_token(self):
        mint = self._mint(100)
        token_id = f"{mint.txid}.0"
        transfer = make_transaction(
            [token_script(self.owner, token_id, 100, {"memo": "pago"})],
            inputs=spend_inputs(mint)
        )

        result = self.engine.evaluate(transfer, previous_coins=[0])

        self.assertEqual(result.outputs_to_admit, [0])
        self.assertEqual(result.coins_to_retain, [0])

    def test_unbalanced_transfer_is_vetoed(self):
        mint = self._mint(100)
        transfer = make_transaction(
            [token_script(self.owner, f"{mint.txid}.0", 150)],
            inputs=spend_inputs(mint)
        )

        result = self.engine.evaluate(transfer, previous_coins=[0])

        self.assertEqual(result.outputs_to_admit, [])
        self.assertEqual(result.coins_to_retain, [])
        self.assertEqual(result.reason_for(0), RejectionReason.LEDGER_UNBALANCED)

    def test_split_and_merge(self):
        source = make_transaction(
            [token_script(self.owner, "abc", 60), token_script(self.owner, "abc", 40)], label="abc"
        )
        spend = make_transaction(
            [token_script(self.owner, "abc", 70), token_script(self.owner, "abc", 30), p2pkh(b'\x01' * 20)],
            inputs=spend_inputs(source)
        )

        result = self.engine.evaluate(spend, previous_coins=[0, 1])

        self.assertEqual(result.outputs_to_admit, [0, 1])
        self.assertEqual(result.coins_to_retain, [0, 1])
        self.assertEqual(result.reason_for(2), RejectionReason.NOT_APPLICABLE)

    def test_input_only_is_vetoed(self):
        source = make_transaction([token_script(self.owner, "abc", 50)], label="only")
        burn = make_transaction([p2pkh(b'\x02' * 20)], inputs=spend_inputs(source))

        result = self.engine.evaluate(burn, previous_coins=[0])

        self.assertEqual(result.outputs_to_admit, [])
        self.assertEqual(result.coins_to_retain, [])

    def test_unretained_inputs_do_not_count(self):
        source = make_transaction([token_script(self.owner, "abc", 50)], label="unretained")
        spend = make_transaction([token_script(self.owner, "abc", 50)], inputs=spend_inputs(source))

        result = self.engine.evaluate(spend, previous_coins=[])

        self.assertEqual(result.outputs_to_admit, [])
        self.assertEqual(result.reason_for(0), RejectionReason.LEDGER_UNBALANCED)

    def test_compute_balances_keys(self):
        mint = self._mint(10, label="keys")
        context = AdmissionContext(mint, [], SignatureLinkageVerifier())
        balances, retained = LedgerBalanceValidator().compute_balances(context, [0])

        self.assertEqual(retained, [])
        entry = balances[f"{mint.txid}.0"]
        self.assertEqual(entry.amount, -10)
        self.assertTrue(entry.is_mint)
        self.assertEqual(LedgerBalanceValidator.unbalanced_tokens(balances), [])


class TestTokenFields(unittest.TestCase):

    def setUp(self):
        self.key = bytes.fromhex(make_signer("fields").get_identity_key())

    def test_decode(self):
        token = TokenFields.from_script(PushDrop.lock([b'abc', TokenFields.encode_amount(7), b'{"a": 1}'], self.key))
        self.assertEqual(token.token_id, "abc")
        self.assertEqual(token.amount, 7)
        self.assertEqual(token.custom_fields, {"a": 1})
        self.assertFalse(token.is_mint())

    def test_amount_must_be_eight_bytes(self):
        engine = AdmissionEngine(TokenDemoPolicy())
        bad_amount = PushDrop.lock([b'abc', b'\x07\x00', b'{}'], self.key)
        bad_json = PushDrop.lock([b'abc', TokenFields.encode_amount(1), b'{no'], self.key)
        short = PushDrop.lock([b'abc', TokenFields.encode_amount(1)], self.key)

        result = engine.evaluate(make_transaction([bad_amount, bad_json, short], label="bad-fields"))

        self.assertEqual(result.rejections, {
            0: RejectionReason.INVALID_FIELD,
            1: RejectionReason.INVALID_FIELD,
            2: RejectionReason.MISSING_FIELD,
        })

if __name__ == '__main__':
    unittest.main()
