import re

from marshmallow import Schema, fields, ValidationError, validates, validates_schema
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow.validate import Length, Range, Regexp

from fairspin_be.models import db, SpinEvent
from fairspin_be.utils.grid_generation import grid_to_string
from fairspin_be.utils.tx_ids import ensure_base32_tx_id

HEX_BET_KEY = Regexp(r'^[0-9a-fA-F]{112}\Z', error='Bet key must be 112 hexadecimal characters.')
HEX_SEED = Regexp(r'^[0-9a-fA-F]{64}\Z', error='Seed must be 64 hexadecimal characters.')
BASE32_TX_ID = re.compile(r'^[A-Z2-7]{52}\Z')

# --- Request Schemas ---
class ReplayQuerySchema(Schema):
    # Query string uses the frontend's camelCase names
    bet_per_line = fields.Int(data_key='betPerLine', load_default=None, validate=Range(min=1))
    selected_paylines = fields.Int(data_key='selectedPaylines', load_default=None, validate=Range(min=1))

class VerifySpinSchema(Schema):
    bet_key = fields.Str(required=True, validate=HEX_BET_KEY)
    seed = fields.Str(required=True, validate=HEX_SEED)
    bet_per_line = fields.Int(load_default=None, validate=Range(min=1))
    paylines = fields.Int(load_default=None, validate=Range(min=1))
    block_number = fields.Int(load_default=None, validate=Range(min=0))
    is_bonus_spin = fields.Bool(load_default=False)

class SpinEventSchema(SQLAlchemyAutoSchema):
    # Rows fed in from the contract event stream
    class Meta:
        model = SpinEvent
        load_instance = True
        sqla_session = db.session
        exclude = ("id", "created_at")

    txid = auto_field(required=True)
    sender = auto_field(required=True, validate=Length(equal=58))
    amount = auto_field(required=True)
    max_payline_index = auto_field(validate=Range(min=0))
    index_value = auto_field(validate=Range(min=0))
    round = auto_field(required=True)

    @validates('amount')
    def validate_amount(self, value, **kwargs):
        if value < 0:
            raise ValidationError('Amount cannot be negative.')

    @validates_schema
    def validate_txid(self, data, **kwargs):
        txid = data.get('txid')
        if txid and not BASE32_TX_ID.match(ensure_base32_tx_id(txid)):
            raise ValidationError('Unrecognised transaction id format.', field_name='txid')

# --- Response Schemas ---
class WinningLineSchema(Schema):
    line_id = fields.Int()
    symbol = fields.Str()
    match_count = fields.Int()
    payout = fields.Int()
    pattern = fields.List(fields.Int(), allow_none=True)
    ways = fields.Int(allow_none=True)
    wild_multiplier = fields.Int(allow_none=True)
    is_jackpot = fields.Bool()

class SpinOutcomeSchema(Schema):
    grid = fields.Method("get_grid")
    grid_string = fields.Method("get_grid_string")
    winning_lines = fields.List(fields.Nested(WinningLineSchema))
    total_payout = fields.Int()
    total_bet = fields.Int()
    win_level = fields.Str()
    bonus_spins_awarded = fields.Int()
    jackpot_hit = fields.Bool()
    block_number = fields.Int(allow_none=True)
    block_seed = fields.Str(allow_none=True)
    bet_key = fields.Str(allow_none=True)

    def get_grid(self, obj):
        return obj.grid.to_lists()

    def get_grid_string(self, obj):
        return grid_to_string(obj.grid)

class ReplayResultSchema(Schema):
    tx_id = fields.Str()
    bet_key = fields.Str()
    submit_round = fields.Int()
    claim_round = fields.Int()
    bet_per_line = fields.Int()
    paylines = fields.Int()
    source = fields.Str()
    outcome = fields.Nested(SpinOutcomeSchema)
