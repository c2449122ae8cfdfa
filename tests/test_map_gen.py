"""
Test suite for hex math and sample board generation.
"""

import pytest

from map_gen import (
    HexKeyError,
    canonical_edge_key,
    capital_positions,
    generate_axial_coords,
    generate_board,
    get_hex_neighbors,
    hex_distance,
    key_distance,
    neighbor_hex_keys,
    parse_edge_key,
    parse_hex_key,
    to_hex_key,
)


class TestHexUtilities:
    """Test hex keys, neighbours and distances."""

    def test_get_hex_neighbors(self) -> None:
        neighbors = get_hex_neighbors(5, 5)
        expected = [(6, 5), (6, 4), (5, 4), (4, 5), (4, 6), (5, 6)]
        assert set(neighbors) == set(expected)

    def test_hex_distance(self) -> None:
        assert hex_distance(5, 5, 5, 5) == 0
        assert hex_distance(5, 5, 6, 5) == 1
        assert hex_distance(5, 5, 5, 6) == 1
        assert hex_distance(5, 5, 7, 7) == 4
        assert key_distance('0,0', '2,-1') == 2

    def test_key_round_trip(self) -> None:
        assert to_hex_key(-3, 2) == '-3,2'
        assert parse_hex_key('-3,2') == (-3, 2)
        assert neighbor_hex_keys('0,0') == ['1,0', '1,-1', '0,-1', '-1,0', '-1,1', '0,1']

    @pytest.mark.parametrize("key", ['', '1', '1,2,3', 'a,b', '1.5,2', None, 7])
    def test_malformed_hex_keys(self, key) -> None:
        with pytest.raises(HexKeyError):
            parse_hex_key(key)

    def test_to_hex_key_needs_integers(self) -> None:
        with pytest.raises(HexKeyError):
            to_hex_key(1.5, 0)
        with pytest.raises(HexKeyError):
            to_hex_key(True, 0)

    def test_canonical_edge_key(self) -> None:
        assert canonical_edge_key('1,0', '0,0') == '0,0|1,0'
        assert canonical_edge_key('0,0', '0,-1') == '0,-1|0,0'
        assert canonical_edge_key('-1,0', '0,0') == '-1,0|0,0'
        with pytest.raises(HexKeyError):
            canonical_edge_key('0,0', '0,0')

    def test_parse_edge_key(self) -> None:
        assert parse_edge_key('0,0|1,0') == ('0,0', '1,0')
        with pytest.raises(HexKeyError):
            parse_edge_key('0,0-1,0')
        with pytest.raises(HexKeyError):
            parse_edge_key('0,0|x')


class TestBoardShape:
    """Radius-N hexagons and capital placement."""

    @pytest.mark.parametrize("radius,count", [(0, 1), (1, 7), (2, 19), (4, 61)])
    def test_hex_count(self, radius, count) -> None:
        assert len(generate_axial_coords(radius)) == count

    def test_negative_radius(self) -> None:
        with pytest.raises(ValueError):
            generate_axial_coords(-1)

    def test_capitals_on_rim(self) -> None:
        assert capital_positions(4, 2) == [(4, 0), (-4, 0)]
        assert len(set(capital_positions(3, 6))) == 6
        for q, r in capital_positions(3, 3):
            assert hex_distance(q, r, 0, 0) == 3

    def test_player_count_bounds(self) -> None:
        with pytest.raises(ValueError):
            capital_positions(4, 0)
        with pytest.raises(ValueError):
            capital_positions(4, 7)


class TestGenerateBoard:
    """Seeded sample boards."""

    def test_layout(self, sample_board) -> None:
        assert len(sample_board.hexes) == 61
        assert sample_board.hexes['0,0'].tile == 'center'
        assert sample_board.hexes['4,0'].tile == 'capital'
        assert sample_board.hexes['4,0'].owner_player_id == 'p1'
        assert sample_board.hexes['-4,0'].owner_player_id == 'p2'

    def test_special_tiles(self, sample_board) -> None:
        tiles = [h.tile for h in sample_board.hexes.values()]
        assert tiles.count('mine') == 4
        assert tiles.count('forge') == 2
        for hex_obj in sample_board.hexes.values():
            if hex_obj.tile == 'mine':
                assert 1 <= hex_obj.mine_value <= 3
            if hex_obj.tile in ('mine', 'forge'):
                assert key_distance(hex_obj.key, '4,0') >= 2
                assert key_distance(hex_obj.key, '-4,0') >= 2

    def test_starting_units_and_bridges(self, sample_board) -> None:
        assert sample_board.hexes['4,0'].occupants == {'p1': ('p1_f1', 'p1_f2', 'p1_f3')}
        assert len(sample_board.units) == 6
        assert len(sample_board.bridges) == 4
        assert '3,0|4,0' in sample_board.bridges
        for edge_key, bridge in sample_board.bridges.items():
            a, b = parse_edge_key(edge_key)
            assert key_distance(a, b) == 1
            assert '4,0' in (a, b) or '-4,0' in (a, b)
            assert bridge.owner_player_id in ('p1', 'p2')

    def test_deterministic(self) -> None:
        assert generate_board(seed=7) == generate_board(seed=7)

    def test_three_players(self) -> None:
        board = generate_board(seed=3, radius=3, player_ids=('a', 'b', 'c'))
        capitals = sorted(h.owner_player_id for h in board.hexes.values() if h.tile == 'capital')
        assert capitals == ['a', 'b', 'c']
