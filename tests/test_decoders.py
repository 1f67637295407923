import pytest

from dictq.errors import ProtocolViolation
from dictq.model import Database, Definition, Match, MatchingStrategy
from dictq.protocol.decoders import (
    decode_databases,
    decode_definitions,
    decode_match_entries,
    decode_matches,
    decode_strategies,
    split_name_quoted,
    tokenize,
)


def test_database_line_with_tab_separator():
    assert decode_databases(['able\t"a way of doing"']) == [Database("able", "a way of doing")]


@pytest.mark.parametrize(
    "line",
    [
        'wn "WordNet (r) 3.0 (2006)"',
        'foldoc "The Free On-line Dictionary of Computing (27 SEP 03)"',
        'gcide "The Collaborative International Dictionary of English v.0.48"',
        'x ""',
    ],
)
def test_name_description_reencodes_to_same_content(line):
    name, desc = split_name_quoted(line)
    assert f'{name} "{desc}"' == line


@pytest.mark.parametrize("line", ["wn WordNet", "wn", '"wn" ', "", 'wn "unterminated'])
def test_line_without_quoted_segment_is_violation(line):
    with pytest.raises(ProtocolViolation):
        decode_databases([line])


def test_strategies_identity_is_name():
    out = decode_strategies(['exact "Match headwords exactly"', 'prefix "Match prefixes"', 'exact "again"'])
    assert [s.name for s in out] == ["exact", "prefix"]
    assert out[0].description == "Match headwords exactly"
    assert MatchingStrategy("exact", "a") == MatchingStrategy("exact", "b")
    assert len({MatchingStrategy("exact", "a"), MatchingStrategy("exact", "b")}) == 1


def test_matches_keep_server_order_and_drop_repeats():
    lines = ['wn "dog"', 'wn "dogma"', 'jargon "dog"', 'foldoc "dogfood"']
    assert decode_matches(lines) == ["dog", "dogma", "dogfood"]
    assert decode_match_entries(lines + ['wn "dog"']) == [
        Match("wn", "dog"),
        Match("wn", "dogma"),
        Match("jargon", "dog"),
        Match("foldoc", "dogfood"),
    ]


def test_two_definitions_each_three_lines():
    lines = [
        '151 "dog" wn "WordNet (r) 3.0 (2006)"',
        "dog",
        "  n 1: a member of the genus Canis",
        "  v 1: go after with the intent to catch",
        ".",
        '151 "dog" jargon "The Jargon File"',
        "dog",
        "  [Usenet] A pseudo-name for a bad program.",
        "  See also cat.",
        ".",
    ]
    defs = decode_definitions(lines)
    assert defs == [
        Definition("dog", "wn", "dog\n  n 1: a member of the genus Canis\n  v 1: go after with the intent to catch"),
        Definition("dog", "jargon", "dog\n  [Usenet] A pseudo-name for a bad program.\n  See also cat."),
    ]


def test_definition_header_with_quoted_database():
    defs = decode_definitions(['151 "able" "wn" "WordNet"', "able", "."])
    assert defs == [Definition("able", "wn", "able")]


def test_definition_text_is_unstuffed_and_last_block_finalized():
    defs = decode_definitions(['151 "dot" foldoc', "..escaped", "..", "plain"])
    assert defs == [Definition("dot", "foldoc", ".escaped\n.\nplain")]


def test_text_line_that_looks_like_header_stays_text():
    defs = decode_definitions(['151 "x" wn', '151 "not" a header', "."])
    assert len(defs) == 1
    assert defs[0].body == '151 "not" a header'


def test_no_headers_is_empty():
    assert decode_definitions([]) == []


def test_text_outside_definition_is_violation():
    with pytest.raises(ProtocolViolation):
        decode_definitions(["stray text"])


def test_tokenize_handles_escapes():
    assert tokenize(r'151 "say \"hi\"" wn "x y"') == ["151", 'say "hi"', "wn", "x y"]
    assert tokenize('a "" b') == ["a", "", "b"]


def test_quoted_text_escapes_are_undone():
    assert split_name_quoted(r'wn "say \"hi\" \\ bye"') == ("wn", 'say "hi" \\ bye')
    # same headword whether it comes from a match line or a definition header
    assert decode_matches([r'wn "say \"hi\""']) == tokenize(r'151 "say \"hi\"" wn "WordNet"')[1:2]
