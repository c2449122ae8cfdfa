"""
Tests for snapshot parsing, config loading and context assembly.
"""

import json

from map_gen import generate_board
from models import Board, Hex
from state import (
    DEFAULT_CONFIG,
    board_to_dict,
    build_context,
    list_players,
    load_config,
    parse_board,
    parse_modifier,
    parse_modifiers,
)


RAW_BOARD = {
    'radius': 1,
    'hexes': {
        '0,0': {'key': '0,0', 'tile': 'center', 'occupants': {'p1': ['f1'], 'p2': []}},
        '1,0': {'key': '1,0', 'tile': 'capital', 'ownerPlayerId': 'p2', 'occupants': {'p2': ['c1']}},
        '0,1': {'tile': 'mine', 'mineValue': 2},
        'bad': 'not a hex',
    },
    'bridges': {
        '0,0|1,0': {'key': '0,0|1,0', 'from': '0,0', 'to': '1,0', 'ownerPlayerId': 'p1'},
    },
    'units': {
        'f1': {'id': 'f1', 'kind': 'force', 'ownerPlayerId': 'p1', 'hex': '0,0'},
        'c1': {'id': 'c1', 'kind': 'champion', 'ownerPlayerId': 'p2', 'hex': '1,0',
               'cardDefId': 'champion.bastion', 'hp': 2, 'maxHp': 3},
        'x1': {'id': 'x1', 'kind': 'dragon', 'ownerPlayerId': 'p2', 'hex': '1,0'},
        'x2': {'id': 'x2', 'kind': 'force', 'hex': '1,0'},
    },
}


class TestParseBoard:
    """Wire snapshot to immutable Board."""

    def test_well_formed_entries(self) -> None:
        board = parse_board(RAW_BOARD)
        assert board.radius == 1
        assert set(board.hexes) == {'0,0', '1,0', '0,1'}
        assert board.hexes['0,1'].key == '0,1'
        assert board.hexes['0,1'].mine_value == 2
        assert board.hexes['1,0'].owner_player_id == 'p2'
        assert board.bridges['0,0|1,0'].owner_player_id == 'p1'

    def test_malformed_units_are_skipped(self) -> None:
        board = parse_board(RAW_BOARD)
        assert set(board.units) == {'f1', 'c1'}
        champion = board.units['c1']
        assert champion.is_champion
        assert (champion.hp, champion.max_hp) == (2, 3)
        assert board.units['f1'].card_def_id is None

    def test_empty_owner_lists_are_not_players(self) -> None:
        board = parse_board(RAW_BOARD)
        assert board.hexes['0,0'].player_ids() == ['p1']

    def test_non_dict_snapshot(self) -> None:
        assert parse_board(None) == Board()
        assert parse_board([]) == Board()

    def test_non_dict_sections_are_empty(self) -> None:
        board = parse_board({'hexes': ['0,0'], 'bridges': 'x', 'units': 7, 'radius': 2})
        assert board == Board(radius=2)
        board = parse_board({'hexes': RAW_BOARD['hexes'], 'units': ['f1']})
        assert len(board.hexes) == 3
        assert board.units == {}

    def test_round_trip_through_wire_shape(self) -> None:
        board = generate_board(seed=5, radius=2)
        assert parse_board(json.loads(json.dumps(board_to_dict(board)))) == board


class TestParseModifiers:
    """Modifier kinds, explicit or inferred."""

    def test_explicit_kind(self) -> None:
        modifier = parse_modifier({'id': 'm1', 'kind': 'bridge_lock', 'attachedEdge': '0,0|1,0'})
        assert modifier.kind == 'bridge_lock'
        assert modifier.attached_edge == '0,0|1,0'

    def test_inferred_kinds(self) -> None:
        raw = [
            {'id': 'faction.gatewright.link', 'data': {'link': {'from': '0,0', 'to': '2,0'}}},
            {'id': 'c1.bridge_bypass', 'attachedUnitId': 'c1'},
            {'id': 'card.lock', 'attachedEdge': '0,0|1,0'},
            {'id': 'card.veil', 'data': {'targeting': {'scope': 'ownerChampions'}}},
            {'id': 'card.gold', 'data': {'gold': 2}},
        ]
        kinds = [m.kind for m in parse_modifiers(raw)]
        assert kinds == ['link', 'bridge_bypass', 'bridge_lock', 'ward', 'other']

    def test_malformed_modifiers_are_skipped(self) -> None:
        assert parse_modifiers([{'kind': 'link'}, None, {'id': 'ok'}])[0].id == 'ok'
        assert parse_modifiers({'id': 'not a list'}) == ()
        assert parse_modifier({'id': 'm', 'data': 'oops'}).data == {}


class TestConfig:
    """config.json with defaults."""

    def test_missing_file_uses_defaults(self, tmp_path) -> None:
        assert load_config(str(tmp_path / 'missing.json')) == DEFAULT_CONFIG

    def test_invalid_file_uses_defaults(self, tmp_path) -> None:
        path = tmp_path / 'config.json'
        path.write_text('{not json')
        assert load_config(str(path)) == DEFAULT_CONFIG

    def test_overrides_merge_with_defaults(self, tmp_path) -> None:
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'occupancy_cap': 3}))
        config = load_config(str(path))
        assert config['occupancy_cap'] == 3
        assert config['label_row_limit'] == DEFAULT_CONFIG['label_row_limit']

    def test_shipped_config_has_every_key(self) -> None:
        assert set(DEFAULT_CONFIG) <= set(load_config())


class TestBuildContext:
    """TargetContext assembly."""

    def test_capitals_derived_from_tiles(self) -> None:
        board = parse_board(RAW_BOARD)
        ctx = build_context(board, player_id='p1')
        assert ctx.capitals == {'p2': '1,0'}
        assert ctx.player_ids == ('p1', 'p2')
        assert ctx.planned_edges == frozenset()

    def test_explicit_values_win(self) -> None:
        board = Board(hexes={'0,0': Hex(key='0,0')})
        ctx = build_context(board, player_id=None, player_ids=['p2', 'p1'],
                            capitals={'p1': '0,0'}, planned_edges=['0,0|1,0'])
        assert ctx.player_id is None
        assert ctx.player_ids == ('p2', 'p1')
        assert ctx.capitals == {'p1': '0,0'}
        assert '0,0|1,0' in ctx.planned_edges

    def test_list_players(self, sample_board) -> None:
        assert list_players(sample_board) == ['p1', 'p2']
