from flask import Flask, request, jsonify
from flask_cors import CORS
from combat_log import extract_combat_sequences, summarize_sequence
from describe import build_hex_labels, describe_payload
from map_gen import generate_board
from models import TargetContext
from selection import (SelectionState, begin_selection, cancel_selection, candidates_for, pick_choice,
                       pick_edge, pick_hex, pick_player, set_move_options)
from state import board_to_dict, build_context, load_config, parse_board, parse_modifiers
from target_rules import eligible_players
from target_specs import TargetKind, TargetSpec, parse_target_spec, spec_for_basic_action
from typing import Any, Dict, List, Tuple
import logging

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)  # Enable CORS for all routes
config = load_config()


class RequestError(ValueError):
    """Exception raised when a request body cannot be turned into a targeting query."""
    pass


def _read_targeting_request(data: Dict[str, Any]) -> Tuple[TargetContext, TargetSpec]:
    """Build the context and spec from a candidates/payload request body."""
    if not isinstance(data.get('board'), dict):
        raise RequestError('board must be an object')
    board = parse_board(data['board'])
    modifiers = parse_modifiers(data.get('modifiers', []))

    player_id = data.get('playerId')
    if player_id is not None and not isinstance(player_id, str):
        raise RequestError('playerId must be a string or null')
    player_ids = data.get('playerIds', [])
    if not isinstance(player_ids, list):
        raise RequestError('playerIds must be an array')
    capitals = data.get('capitals')
    if capitals is not None and not isinstance(capitals, dict):
        raise RequestError('capitals must be an object')
    planned_edges = data.get('plannedEdges', [])
    if not isinstance(planned_edges, list):
        raise RequestError('plannedEdges must be an array')

    if 'basicAction' in data:
        spec = spec_for_basic_action(data['basicAction'])
        if spec is None:
            raise RequestError(f"Unknown basic action: {data['basicAction']}")
    else:
        spec = parse_target_spec(data.get('targetSpec'))
        if spec is None:
            raise RequestError('targetSpec is missing or invalid')

    ctx = build_context(board, modifiers, player_id, player_ids, capitals, planned_edges)
    return ctx, spec


def _replay_picks(state: SelectionState, ctx: TargetContext, picks: List[Any]) -> SelectionState:
    """Apply a list of UI picks in order to a fresh selection."""
    for pick in picks:
        if not isinstance(pick, dict):
            raise RequestError('Each pick must be an object')
        if pick.get('cancel') is True:
            state = cancel_selection(state)
        elif 'hex' in pick:
            state = pick_hex(state, ctx, pick['hex'])
        elif 'edge' in pick:
            state = pick_edge(state, ctx, pick['edge'])
        elif 'player' in pick:
            state = pick_player(state, ctx, pick['player'])
        elif 'choice' in pick:
            state = pick_choice(state, ctx, pick['choice'], pick.get('hexKey'))
        elif 'forceCount' in pick or 'includeChampions' in pick:
            state = set_move_options(state, ctx, pick.get('forceCount'), pick.get('includeChampions'))
        else:
            raise RequestError(f'Unrecognised pick: {pick}')
    return state


def _run_selection(data: Dict[str, Any]) -> Tuple[TargetContext, SelectionState]:
    ctx, spec = _read_targeting_request(data)
    picks = data.get('picks', [])
    if not isinstance(picks, list):
        raise RequestError('picks must be an array')
    return ctx, _replay_picks(begin_selection(spec), ctx, picks)


@app.route('/api/targets/candidates', methods=['POST'])
def get_candidates():
    """Compute selectable hexes and edges for a spec after replaying any picks."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Invalid JSON data'}), 400

        ctx, state = _run_selection(data)
        response_data = candidates_for(state, ctx).to_dict()
        response_data['selection'] = state.to_dict()
        if state.kind == TargetKind.PLAYER:
            response_data['candidatePlayers'] = eligible_players(ctx, state.spec)
        return jsonify(response_data)

    except RequestError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception('Candidate computation failed')
        return jsonify({'error': f'Failed to compute candidates: {str(e)}'}), 500


@app.route('/api/targets/payload', methods=['POST'])
def get_payload():
    """Replay picks and return the finalized payload, or null while incomplete."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Invalid JSON data'}), 400

        ctx, state = _run_selection(data)
        labels = build_hex_labels(ctx.board.hexes, config.get('label_row_limit', 26))
        card_names = data.get('cardNames') if isinstance(data.get('cardNames'), dict) else {}
        description = describe_payload(state.payload, ctx.board, labels, card_names)

        return jsonify({
            'kind': state.kind.value,
            'complete': state.is_complete,
            'payload': state.payload.to_dict() if state.payload is not None else None,
            'description': description.to_dict(),
        })

    except RequestError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception('Payload computation failed')
        return jsonify({'error': f'Failed to build payload: {str(e)}'}), 500


@app.route('/api/combat/sequences', methods=['POST'])
def get_combat_sequences():
    """Extract closed combat sequences from an event log."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Invalid JSON data'}), 400

        events = data.get('log', [])
        if not isinstance(events, list):
            return jsonify({'error': 'log must be an array'}), 400

        sequences = extract_combat_sequences(events)
        return jsonify({
            'sequences': [sequence.to_dict() for sequence in sequences],
            'summaries': [summarize_sequence(sequence) for sequence in sequences],
        })

    except Exception as e:
        logger.exception('Combat extraction failed')
        return jsonify({'error': f'Failed to extract combat sequences: {str(e)}'}), 500


@app.route('/api/board/sample', methods=['GET'])
def get_sample_board():
    """Generate a sample board snapshot for previews and fixtures."""
    try:
        try:
            seed = int(request.args.get('seed', 42))
            radius = int(request.args.get('radius', config.get('default_board_radius', 4)))
        except (ValueError, TypeError):
            return jsonify({'error': 'seed and radius must be integers'}), 400
        if radius < 1:
            return jsonify({'error': 'radius must be at least 1'}), 400

        players = request.args.get('players', 'p1,p2')
        player_ids = [p for p in players.split(',') if p]
        if not 1 <= len(player_ids) <= 6:
            return jsonify({'error': 'players must list between 1 and 6 ids'}), 400

        board = generate_board(
            seed,
            radius=radius,
            player_ids=player_ids,
            mine_count=config.get('sample_mine_count', 4),
            forge_count=config.get('sample_forge_count', 2),
            frequency=config.get('noise_frequency', 3.0),
            starting_forces=config.get('sample_starting_forces', 3),
            starting_bridges=config.get('sample_starting_bridges', 2),
        )
        return jsonify({'seed': seed, 'board': board_to_dict(board),
                        'labels': build_hex_labels(board.hexes, config.get('label_row_limit', 26))})

    except Exception as e:
        logger.exception('Board generation failed')
        return jsonify({'error': f'Failed to generate board: {str(e)}'}), 500


if __name__ == '__main__':
    app.run(debug=True)
