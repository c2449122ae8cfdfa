"""
Tests for hex labels and target descriptions.
"""

from conftest import make_board
from describe import (
    build_hex_labels,
    champion_glyph,
    describe_basic_action,
    describe_payload,
    format_edge_label,
    format_tile_label,
)
from payloads import (
    ChampionPayload,
    ChoicePayload,
    EdgePayload,
    HexPairPayload,
    MultiEdgePayload,
    MultiPathPayload,
    NonePayload,
    PlayerPayload,
)

LABELS = {'0,0': 'A1', '1,0': 'A2', '-1,1': 'B1', '0,1': 'B2'}


class TestLabels:
    """Row and column labels."""

    def test_rows_then_columns(self) -> None:
        assert build_hex_labels(['0,0', '1,0', '0,1', '-1,1']) == LABELS

    def test_malformed_keys_are_skipped(self) -> None:
        assert build_hex_labels(['0,0', 'oops']) == {'0,0': 'A1'}

    def test_rows_past_the_limit(self) -> None:
        labels = build_hex_labels(['0,0', '0,1', '0,2', '1,2'], row_limit=2)
        assert labels == {'0,0': 'A1', '0,1': 'B1', '0,2': 'R3-1', '1,2': 'R3-2'}

    def test_overflow_rows_do_not_collide(self) -> None:
        keys = [f'{q},{r}' for r in range(31) for q in range(12)]
        labels = build_hex_labels(keys, row_limit=26)
        assert labels['0,2'] == 'C1'
        assert labels['0,27'] == 'R28-1'
        assert labels['10,27'] == 'R28-11'
        assert len(set(labels.values())) == len(keys)

    def test_edge_and_tile_labels(self) -> None:
        assert format_edge_label('0,0|1,0', LABELS) == 'A1-A2'
        assert format_edge_label('9,9|9,8', LABELS) == '9,9-9,8'
        assert format_edge_label('broken', LABELS) == 'broken'
        assert format_tile_label('forge') == 'Forge'
        assert format_tile_label('normal') is None

    def test_champion_glyph(self) -> None:
        assert champion_glyph('Iron Warden') == 'IW'
        assert champion_glyph('bastion') == 'B'
        assert champion_glyph('42') == '42'
        assert champion_glyph('!!') == 'C'


class TestDescribePayload:
    """Reveal-panel lines for each payload shape."""

    def setup_method(self) -> None:
        self.board = make_board(units=[('c1', 'champion', 'p2', '0,1')], radius=1)

    def test_edges(self) -> None:
        info = describe_payload(EdgePayload('0,0|1,0'), self.board, LABELS)
        assert info.to_dict() == {'targetLines': ['Edge A1-A2'], 'targetHexKeys': [],
                                  'targetEdgeKeys': ['0,0|1,0']}
        info = describe_payload(MultiEdgePayload(('0,0|1,0', '-1,1|0,1')), self.board, LABELS)
        assert info.lines == ['Edges A1-A2, B1-B2']

    def test_paths(self) -> None:
        info = describe_payload(MultiPathPayload((('0,0', '1,0'), ('-1,1', '0,1'))), self.board, LABELS)
        assert info.lines == ['Path A1 → A2', 'Path B1 → B2']
        assert info.hex_keys == ['0,0', '1,0', '-1,1', '0,1']

    def test_hex_pair_and_choice(self) -> None:
        assert describe_payload(HexPairPayload('0,0', '0,1'), self.board, LABELS).lines == ['Hexes A1, B2']
        assert describe_payload(ChoicePayload('capital'), self.board, LABELS).lines == ['Choice: Capital']
        info = describe_payload(ChoicePayload('occupiedHex', '1,0'), self.board, LABELS)
        assert info.lines == ['Choice: Occupied A2']
        assert info.hex_keys == ['1,0']

    def test_champion_uses_card_name(self) -> None:
        info = describe_payload(ChampionPayload('c1'), self.board, LABELS, {'champion.c1': 'Iron Warden'})
        assert info.lines == ['Champion Iron Warden @ B2']
        info = describe_payload(ChampionPayload('c1'), self.board, LABELS)
        assert info.lines == ['Champion champion.c1 @ B2']
        assert describe_payload(ChampionPayload('gone'), self.board, LABELS).lines == ['Champion gone']

    def test_player_none_and_missing(self) -> None:
        assert describe_payload(PlayerPayload('p2'), self.board, LABELS).lines == ['Player p2']
        assert describe_payload(NonePayload(), self.board, LABELS).lines == []
        assert describe_payload(None, self.board, LABELS).lines == []


class TestDescribeBasicAction:
    """Labels for basic action submissions."""

    def test_build_bridge(self) -> None:
        result = describe_basic_action({'kind': 'buildBridge', 'edgeKey': '0,0|1,0'}, LABELS)
        assert result['label'] == 'Build Bridge'
        assert result['targets']['targetLines'] == ['Edge A1-A2']
        assert result['targets']['targetHexKeys'] == ['0,0', '1,0']

    def test_march(self) -> None:
        action = {'kind': 'march', 'from': '0,0', 'to': '1,0', 'forceCount': 2, 'includeChampions': False}
        result = describe_basic_action(action, LABELS)
        assert result['label'] == 'March'
        assert result['targets']['targetLines'] == ['From A1 to A2', 'Forces: 2', 'Champions: Hold']

    def test_capital_reinforce(self) -> None:
        assert describe_basic_action({'kind': 'capitalReinforce'}, LABELS)['targets']['targetLines'] == \
            ['Reinforce capital']
        result = describe_basic_action({'kind': 'capitalReinforce', 'hexKey': '0,1'}, LABELS)
        assert result['targets']['targetLines'] == ['Reinforce B2']

    def test_unknown_kind(self) -> None:
        assert describe_basic_action({'kind': 'pass'}, LABELS)['label'] == 'Action'
