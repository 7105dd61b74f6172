from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from flask import Flask, request, jsonify, current_app, g
import uuid
import json
import logging
from http import HTTPStatus

import click
from marshmallow import ValidationError
from pythonjsonlogger import jsonlogger
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException as WerkzeugHTTPException

from fairspin_be.adapters.registry import create_adapter_from_config
from fairspin_be.config import Config
from fairspin_be.error_codes import ErrorCodes
from fairspin_be.exceptions import AppException
from fairspin_be.models import db
from fairspin_be.routes.replay import replay_bp
from fairspin_be.schemas import SpinEventSchema
from fairspin_be.services.event_bus import GameEventType
from fairspin_be.services.event_store import SqlSpinEventStore
from fairspin_be.services.replay_reconstructor import ReplayReconstructor
from fairspin_be.services.spin_lifecycle import ControllerSettings, SpinLifecycleController
from fairspin_be.utils.bet_key import bet_key_from_hex, decode_bet_key
from fairspin_be.utils.game_config import get_game_config
from fairspin_be.utils.grid_generation import format_grid
from fairspin_be.utils.outcome import compute_outcome

# Custom Logging Filter for Request ID
class RequestIdFilter(logging.Filter):
    def filter(self, record):
        try:
            record.request_id = g.get('request_id', 'N/A')
        except RuntimeError:
            # Outside a request (CLI, worker threads)
            record.request_id = 'N/A'
        return True

def create_app(config_class=Config, chain_adapter=None, event_store=None):
    """Application factory. ``chain_adapter`` and ``event_store`` override the configured ones."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # --- Logging Configuration ---
    if not app.debug:
        logger = app.logger
        handler = logging.StreamHandler()
        formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(request_id)s %(module)s %(funcName)s %(lineno)d %(message)s'
        )
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())
        if logger.hasHandlers():
            logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

        # Engine modules log through their own loggers; route them to the same handler
        engine_logger = logging.getLogger('fairspin_be')
        if not engine_logger.handlers:
            engine_logger.addHandler(handler)
            engine_logger.setLevel(logging.INFO)
    else:
        if not app.logger.handlers:
            logging.basicConfig(level=logging.DEBUG)

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())

    @app.after_request
    def add_request_id_header(response):
        response.headers['X-Request-ID'] = g.get('request_id', 'N/A')
        return response

    # --- Database Setup ---
    db.init_app(app)
    with app.app_context():
        db.create_all()

    # --- Engine Setup ---
    # Fails fast if the machine config is missing or malformed
    app.game_config = get_game_config(app.config['GAME_CONFIG_NAME'])
    app.chain_adapter = chain_adapter or create_adapter_from_config(app.config, app.game_config)
    app.event_store = event_store or SqlSpinEventStore()
    app.replay_reconstructor = ReplayReconstructor(app.chain_adapter, app.event_store, app.game_config)
    app.logger.info(
        f"Serving '{app.game_config.short_name}' ({app.game_config.mode}) "
        f"via {app.config.get('CHAIN_ADAPTER', 'mock')} adapter"
    )

    # --- Error Handlers ---
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        request_id = g.get('request_id', 'N/A')
        current_app.logger.warning(
            f"Request ID: {request_id} - Validation error: {e.messages} - Error Code: {ErrorCodes.VALIDATION_ERROR}"
        )
        return jsonify({
            'request_id': request_id,
            'status': False,
            'error_code': ErrorCodes.VALIDATION_ERROR,
            'status_message': 'Input validation failed.',
            'details': {'errors': e.messages},
            'action_button': None
        }), HTTPStatus.UNPROCESSABLE_ENTITY

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        request_id = g.get('request_id', 'N/A')
        current_app.logger.error(
            f"Request ID: {request_id} - Database error. Error Code: {ErrorCodes.INTERNAL_SERVER_ERROR}",
            exc_info=True
        )
        return jsonify({
            'request_id': request_id,
            'status': False,
            'error_code': ErrorCodes.INTERNAL_SERVER_ERROR,
            'status_message': 'A database error occurred. Please try again later.',
            'details': {},
            'action_button': None
        }), HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(WerkzeugHTTPException)
    def handle_werkzeug_http_exception(e):
        request_id = g.get('request_id', 'N/A')
        error_code = ErrorCodes.GENERIC_ERROR
        if e.code == 404:
            error_code = ErrorCodes.NOT_FOUND
        elif e.code == 405:
            error_code = ErrorCodes.METHOD_NOT_ALLOWED
        elif e.code >= 500:
            error_code = ErrorCodes.INTERNAL_SERVER_ERROR

        current_app.logger.warning(
            f"Request ID: {request_id} - Werkzeug HTTPException: {e.code} - {e.name}: {e.description} - Error Code: {error_code}"
        )
        response_data = {
            'request_id': request_id,
            'status': False,
            'error_code': error_code,
            'status_message': e.name,
            'details': {'description': e.description},
            'action_button': None
        }
        response = e.get_response()
        response.data = jsonify(response_data).data
        response.content_type = "application/json"
        return response

    # --- Global Error Handler ---
    @app.errorhandler(Exception)
    def handle_global_exception(e):
        request_id = g.get('request_id', 'N/A')

        if isinstance(e, AppException):
            current_app.logger.error(
                f"Request ID: {request_id} - AppException: {e.error_code} - {e.status_message} - Details: {e.details}",
                exc_info=True if e.status_code >= 500 else False
            )
            return jsonify({
                'request_id': request_id,
                'status': False,
                'error_code': e.error_code,
                'status_message': e.status_message,
                'details': e.details,
                'action_button': e.action_button
            }), e.status_code

        if isinstance(e, WerkzeugHTTPException):
            return handle_werkzeug_http_exception(e)

        current_app.logger.critical(
            f"Request ID: {request_id} - Unhandled Critical Exception. Error Code: {ErrorCodes.INTERNAL_SERVER_ERROR}",
            exc_info=True
        )
        return jsonify({
            'request_id': request_id,
            'status': False,
            'error_code': ErrorCodes.INTERNAL_SERVER_ERROR,
            'status_message': 'An unexpected internal server error occurred. Please try again later.',
            'details': {},
            'action_button': None
        }), HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(404)
    def handle_flask_not_found(e):
        request_id = g.get('request_id', 'N/A')
        current_app.logger.warning(
            f"Request ID: {request_id} - HTTP 404 Not Found: {request.url} - Error Code: {ErrorCodes.NOT_FOUND}"
        )
        return jsonify({
            'request_id': request_id,
            'status': False,
            'error_code': ErrorCodes.NOT_FOUND,
            'status_message': 'The requested resource was not found.',
            'details': {'path': request.path},
            'action_button': None
        }), HTTPStatus.NOT_FOUND

    # Register Blueprints
    app.register_blueprint(replay_bp)

    # --- CLI commands ---
    @app.cli.command('replay-spin')
    @click.argument('tx_id')
    @click.option('--bet-per-line', type=int, default=None, help='Override the committed bet per line')
    @click.option('--paylines', type=int, default=None, help='Override the committed payline count')
    def replay_spin_command(tx_id, bet_per_line, paylines):
        """Rebuilds and prints the grid of a past spin."""
        try:
            result = app.replay_reconstructor.reconstruct(tx_id, bet_per_line=bet_per_line, paylines=paylines)
        except AppException as e:
            click.echo(f"Replay failed: {e.status_message}")
            raise SystemExit(1)
        if result is None:
            click.echo(f"No spin found for transaction {tx_id}.")
            raise SystemExit(1)

        outcome = result.outcome
        click.echo(f"Transaction: {result.tx_id} (bet key from {result.source})")
        click.echo(f"Rounds: submitted {result.submit_round}, outcome from {result.claim_round}")
        click.echo(format_grid(outcome.grid))
        click.echo(f"Bet: {outcome.total_bet}  Payout: {outcome.total_payout}  Level: {outcome.win_level}")

    @app.cli.command('verify-spin')
    @click.option('--bet-key', required=True, help='112-character hex bet key')
    @click.option('--seed', required=True, help='64-character hex block seed')
    @click.option('--bet-per-line', type=int, default=None, help='Defaults to the committed amount')
    @click.option('--paylines', type=int, default=None, help='Defaults to the committed payline count')
    def verify_spin_command(bet_key, seed, bet_per_line, paylines):
        """Recomputes an outcome from a bet key and block seed."""
        try:
            key = bet_key_from_hex(bet_key)
            seed_bytes = bytes.fromhex(seed)
        except (AppException, ValueError) as e:
            click.echo(f"Invalid input: {getattr(e, 'status_message', e)}")
            raise SystemExit(1)

        commitment = decode_bet_key(key)
        bet_per_line = bet_per_line or commitment.amount
        paylines = paylines or app.replay_reconstructor.default_paylines(commitment)
        try:
            outcome = compute_outcome(key, seed_bytes, app.game_config, bet_per_line, paylines)
        except AppException as e:
            click.echo(f"Verification failed: {e.status_message}")
            raise SystemExit(1)
        click.echo(format_grid(outcome.grid))
        click.echo(json.dumps(outcome.to_dict(), indent=2))

    @app.cli.command('import-spin-events')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def import_spin_events_command(path):
        """Loads a JSON array of spin events into the replay fallback store."""
        with open(path) as f:
            payload = json.load(f)
        try:
            events = SpinEventSchema(many=True).load(payload)
        except ValidationError as e:
            click.echo(f"Invalid spin events: {e.messages}")
            raise SystemExit(1)
        try:
            db.session.add_all(events)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            click.echo(f"Failed to import spin events: {e}")
            raise SystemExit(1)
        click.echo(f"Imported {len(events)} spin event(s).")

    @app.cli.command('play')
    @click.option('--party', required=True, help='Player address')
    @click.option('--bet-per-line', type=int, required=True)
    @click.option('--paylines', type=int, default=1, show_default=True)
    @click.option('--spins', type=int, default=1, show_default=True)
    @click.option('--timeout', type=float, default=120.0, show_default=True, help='Seconds to wait per spin')
    def play_command(party, bet_per_line, paylines, spins, timeout):
        """Runs spins through the full lifecycle against the configured adapter."""
        controller = SpinLifecycleController(
            app.chain_adapter, party, settings=ControllerSettings.from_config(app.config)
        )
        controller.event_bus.on(
            GameEventType.SPIN_SUBMITTED,
            lambda event: click.echo(f"Submitted {event.payload['tx_id']}, waiting for block {event.payload['claim_block']}")
        )
        try:
            controller.initialize()
            for _ in range(spins):
                spin_id = controller.spin(bet_per_line, paylines)
                spin = controller.wait_for_spin(spin_id, timeout=timeout)
                if spin is None:
                    click.echo(f"Spin {spin_id} did not finish within {timeout}s.")
                    break
                if spin.outcome is None:
                    click.echo(f"Spin {spin_id} failed: {spin.error}")
                    continue
                click.echo(format_grid(spin.outcome.grid))
                click.echo(f"Payout: {spin.outcome.total_payout} ({spin.outcome.win_level})")
            click.echo(f"Balance: {controller.get_balance()}")
        except AppException as e:
            click.echo(f"Error: {e.status_message}")
            raise SystemExit(1)
        finally:
            controller.destroy()

    return app
