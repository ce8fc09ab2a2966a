from flask import Flask, request, jsonify
from flask_cors import CORS
from resolution import play_round, RoundError
from simulation import run_simulation, RatioUndefinedError
from state import RandomSource, load_config
from strategies import STRATEGY_MAP, create_strategy, UnknownStrategyError
from typing import Any, Dict, Optional, Tuple
import logging

MAX_TRIALS = 1000000  # Upper bound per request to keep responses timely

app = Flask(__name__)
CORS(app)  # Enable CORS for all routes
logger = logging.getLogger(__name__)


def _parse_optional_int(data: Dict[str, Any], key: str) -> Tuple[Optional[int], Optional[str]]:
    """Read an optional integer field; returns (value, error message)."""
    value = data.get(key)
    if value is None:
        return None, None
    if isinstance(value, bool):
        return None, f'{key} must be an integer'
    try:
        return int(value), None
    except (ValueError, TypeError):
        return None, f'{key} must be an integer'


def _parse_sides(data: Dict[str, Any]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Read side_a/side_b strategy names; returns (side_a, side_b, error message)."""
    side_a = data.get('side_a')
    side_b = data.get('side_b')
    if not side_a or not side_b:
        return None, None, 'side_a and side_b are required'
    for name in (side_a, side_b):
        if not isinstance(name, str) or name not in STRATEGY_MAP:
            return None, None, f'Unknown strategy: {name}'
    return side_a, side_b, None


@app.route('/api/strategies', methods=['GET'])
def list_strategies():
    """List the registered strategy names."""
    return jsonify({'strategies': sorted(STRATEGY_MAP)})


@app.route('/api/simulation/run', methods=['POST'])
def run_simulation_endpoint():
    """Run a full simulation between two strategies and return the ratio and verdict."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Invalid JSON data'}), 400

        side_a, side_b, error = _parse_sides(data)
        if error:
            return jsonify({'error': error}), 400

        trials, error = _parse_optional_int(data, 'trials')
        if error:
            return jsonify({'error': error}), 400
        if trials is not None and not 1 <= trials <= MAX_TRIALS:
            return jsonify({'error': f'trials must be between 1 and {MAX_TRIALS}'}), 400

        seed, error = _parse_optional_int(data, 'seed')
        if error:
            return jsonify({'error': error}), 400

        config = load_config()
        if trials is None:
            trials = min(config['trials'], MAX_TRIALS)

        # Requests always run in-process
        result = run_simulation(side_a, side_b, trials=trials, seed=seed, workers=1, config=config)
        return jsonify(result.to_dict())

    except RatioUndefinedError as e:
        return jsonify({'error': str(e)}), 422
    except (UnknownStrategyError, RoundError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("Simulation request failed")
        return jsonify({'error': f'Failed to run simulation: {str(e)}'}), 500


@app.route('/api/round/play', methods=['POST'])
def play_round_endpoint():
    """Play a single trial and return everything that happened in it."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Invalid JSON data'}), 400

        side_a, side_b, error = _parse_sides(data)
        if error:
            return jsonify({'error': error}), 400

        seed, error = _parse_optional_int(data, 'seed')
        if error:
            return jsonify({'error': error}), 400

        outcome = play_round(create_strategy(side_a), create_strategy(side_b), RandomSource(seed))
        response = outcome.to_dict()
        response.update({'side_a': side_a, 'side_b': side_b})
        return jsonify(response)

    except (UnknownStrategyError, RoundError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("Round request failed")
        return jsonify({'error': f'Failed to play round: {str(e)}'}), 500


if __name__ == '__main__':
    app.run(debug=True)
