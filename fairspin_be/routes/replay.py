from flask import Blueprint, request, jsonify, current_app

from fairspin_be.schemas import ReplayQuerySchema, ReplayResultSchema, SpinOutcomeSchema, VerifySpinSchema
from fairspin_be.exceptions import ReplayNotFoundException
from fairspin_be.utils.bet_key import bet_key_from_hex, decode_bet_key
from fairspin_be.utils.grid_generation import grid_to_string
from fairspin_be.utils.outcome import compute_outcome

replay_bp = Blueprint('replay', __name__, url_prefix='/api/games')

@replay_bp.route('/config', methods=['GET'])
def get_game_config():
    """Public description of the machine this instance serves."""
    return jsonify({'status': True, 'config': current_app.game_config.to_public_dict()}), 200

@replay_bp.route('/history/<string:tx_id>/grid', methods=['GET'])
def replay_spin_grid(tx_id):
    """
    Rebuilds the grid and payout of a past spin from its transaction id.

    ``betPerLine`` and ``selectedPaylines`` override what the bet key committed to.
    """
    query = ReplayQuerySchema().load(request.args)
    result = current_app.replay_reconstructor.reconstruct(
        tx_id,
        bet_per_line=query['bet_per_line'],
        paylines=query['selected_paylines'],
    )
    if result is None:
        raise ReplayNotFoundException(details={'tx_id': tx_id})

    return jsonify({
        'status': True,
        'grid': grid_to_string(result.outcome.grid),
        'replay': ReplayResultSchema().dump(result),
    }), 200

@replay_bp.route('/verify', methods=['POST'])
def verify_spin():
    """Recomputes an outcome from a bet key and block seed supplied by the caller."""
    data = VerifySpinSchema().load(request.get_json(silent=True) or {})
    bet_key = bet_key_from_hex(data['bet_key'])
    commitment = decode_bet_key(bet_key)

    bet_per_line = data['bet_per_line'] or commitment.amount
    paylines = data['paylines'] or current_app.replay_reconstructor.default_paylines(commitment)

    outcome = compute_outcome(
        bet_key,
        bytes.fromhex(data['seed']),
        current_app.game_config,
        bet_per_line,
        paylines,
        block_number=data['block_number'],
        is_bonus_spin=data['is_bonus_spin'],
    )
    current_app.logger.info(f"Verified bet key {data['bet_key'][:16]}...: payout {outcome.total_payout}")
    return jsonify({'status': True, 'outcome': SpinOutcomeSchema().dump(outcome)}), 200
