"""Unit tests for glyph-to-word-to-line clustering."""

import itertools

import pytest

from conftest import make_glyph
from pdftextmap.clustering import GlyphClusterer, bands_overlap, horizontal_gap, overlap_ratio
from pdftextmap.config import ClusteringConfig
from pdftextmap.models import BBox


@pytest.fixture
def clusterer():
    return GlyphClusterer()


def test_hello_forms_one_word_and_w_starts_another(clusterer, hello_glyphs):
    layout = clusterer.cluster(hello_glyphs)

    assert [word.text for word in layout.words] == ["Hello", "W"]
    assert len(layout.lines) == 1
    assert layout.lines[0].text == "Hello W"

    hello = layout.words[0].bbox
    assert hello.x == pytest.approx(10.0)
    assert hello.right == pytest.approx(13.1)
    assert hello.y == pytest.approx(0.0)
    assert hello.height == pytest.approx(2.0)


def test_gap_just_above_threshold_splits_word(clusterer):
    # Threshold is 0.35 * 2.0 = 0.7
    glyphs = [make_glyph("a", 0.0), make_glyph("b", 0.5 + 0.71)]
    layout = clusterer.cluster(glyphs)
    assert [word.text for word in layout.words] == ["a", "b"]


def test_gap_below_threshold_keeps_word(clusterer):
    glyphs = [make_glyph("a", 0.0), make_glyph("b", 0.5 + 0.69)]
    layout = clusterer.cluster(glyphs)
    assert [word.text for word in layout.words] == ["ab"]


def test_whitespace_glyph_terminates_word_without_joining(clusterer):
    glyphs = [
        make_glyph("a", 0.0),
        make_glyph("b", 0.6),
        make_glyph(" ", 1.1, width=0.1),
        make_glyph("c", 1.2),
    ]
    layout = clusterer.cluster(glyphs)

    assert [word.text for word in layout.words] == ["ab", "c"]
    assert all(" " not in word.text for word in layout.words)


def test_zero_glyphs_yield_zero_lines(clusterer):
    layout = clusterer.cluster([])
    assert layout.lines == ()
    assert layout.words == []
    assert layout.text == ""


def test_only_whitespace_glyphs_yield_zero_lines(clusterer):
    layout = clusterer.cluster([make_glyph(" ", 0.0), make_glyph("\t", 1.0)])
    assert layout.lines == ()


def test_vertical_misalignment_splits_word(clusterer):
    # Overlap of 0.5 on height 2.0 is not more than half
    glyphs = [make_glyph("a", 0.0, y=0.0), make_glyph("b", 0.6, y=1.5)]
    layout = clusterer.cluster(glyphs)
    assert len(layout.words) == 2


def test_shuffled_input_gives_reading_order(clusterer, hello_glyphs):
    second_line = [make_glyph(c, 10.0 + i * 0.6, y=10.0) for i, c in enumerate("Bye")]
    ordered = clusterer.cluster(hello_glyphs + second_line)
    shuffled = clusterer.cluster(list(reversed(second_line)) + hello_glyphs[3:] + hello_glyphs[:3])

    assert shuffled.text == ordered.text == "Hello W\nBye"
    assert [w.bbox for w in shuffled.words] == [w.bbox for w in ordered.words]


def test_lines_ordered_top_to_bottom(clusterer):
    glyphs = [
        make_glyph("z", 0.0, y=40.0),
        make_glyph("y", 0.0, y=20.0),
        make_glyph("x", 0.0, y=0.0),
    ]
    layout = clusterer.cluster(glyphs)
    assert [line.text for line in layout.lines] == ["x", "y", "z"]


def test_words_in_line_sorted_by_x(clusterer):
    glyphs = [make_glyph("c", 40.0), make_glyph("a", 0.0), make_glyph("b", 20.0)]
    layout = clusterer.cluster(glyphs)

    xs = [word.bbox.x for word in layout.lines[0].words]
    assert xs == sorted(xs)
    assert layout.lines[0].text == "a b c"


def test_unsorted_mode_trusts_delivery_order():
    clusterer = GlyphClusterer(ClusteringConfig(sort_glyphs=False))
    glyphs = [make_glyph(c, 12.6 - i * 0.6) for i, c in enumerate("olleH")]
    layout = clusterer.cluster(glyphs)

    # Backwards steps never merge, but the line still reads left to right
    assert len(layout.words) == 5
    assert layout.lines[0].text == "H e l l o"


def test_degenerate_glyph_joins_by_point_location(clusterer):
    glyphs = [
        make_glyph("a", 10.0),
        make_glyph(".", 10.6, y=1.0, width=0.0, height=0.0),
    ]
    layout = clusterer.cluster(glyphs)

    assert [word.text for word in layout.words] == ["a."]
    bbox = layout.words[0].bbox
    assert bbox.x == pytest.approx(10.0)
    assert bbox.right == pytest.approx(10.6)
    assert bbox.bottom == pytest.approx(2.0)


def test_custom_gap_factor_merges_wider_gaps():
    clusterer = GlyphClusterer(ClusteringConfig(horizontal_gap_factor=5.0))
    glyphs = [make_glyph("a", 0.0), make_glyph("b", 5.0)]
    layout = clusterer.cluster(glyphs)
    assert [word.text for word in layout.words] == ["ab"]


def _irregular_page():
    glyphs = []
    for row, (y, height) in enumerate([(0.0, 10.0), (6.0, 4.0), (12.0, 10.0), (21.0, 3.0), (40.0, 12.0)]):
        for col in range(6):
            x = col * 7.0 + (col // 3) * 25.0 + row * 0.3
            glyphs.append(make_glyph(chr(ord("a") + col), x, y=y + (col % 2) * 0.8, width=5.0, height=height))
        glyphs.append(make_glyph(" ", 200.0, y=y, width=1.0, height=height))
    return glyphs


def test_glyphs_partition_exactly_into_words(clusterer):
    glyphs = _irregular_page()
    layout = clusterer.cluster(glyphs)

    clustered = [glyph for word in layout.words for glyph in word.glyphs]
    expected = [glyph for glyph in glyphs if not glyph.is_whitespace]

    assert len(clustered) == len(expected)
    assert set(map(id, clustered)) == set(map(id, expected))

    for word in layout.words:
        assert word.bbox.x == pytest.approx(min(g.bbox.x for g in word.glyphs))
        assert word.bbox.y == pytest.approx(min(g.bbox.y for g in word.glyphs))
        assert word.bbox.right == pytest.approx(max(g.bbox.right for g in word.glyphs))
        assert word.bbox.bottom == pytest.approx(max(g.bbox.bottom for g in word.glyphs))


def test_lines_do_not_overlap_beyond_tolerance(clusterer):
    layout = clusterer.cluster(_irregular_page())
    fraction = clusterer.config.line_vertical_overlap

    for first, second in itertools.combinations(layout.lines, 2):
        assert not bands_overlap(first.bbox, second.bbox, fraction)

    for line in layout.lines:
        xs = [word.bbox.x for word in line.words]
        assert xs == sorted(xs)
        assert all(line.bbox.contains(word.bbox) for word in line.words)


def test_bands_overlap_and_gap_helpers():
    a = BBox(0.0, 0.0, 1.0, 2.0)
    assert bands_overlap(a, BBox(2.0, 0.5, 1.0, 2.0), 0.5)
    assert not bands_overlap(a, BBox(2.0, 1.0, 1.0, 2.0), 0.5)
    assert bands_overlap(a, BBox(2.0, 2.0, 0.0, 0.0), 0.5)
    assert horizontal_gap(a, BBox(2.5, 0.0, 1.0, 2.0)) == pytest.approx(1.5)
    assert overlap_ratio(a, BBox(2.0, 0.5, 1.0, 4.0)) == pytest.approx(0.75)
    assert overlap_ratio(a, BBox(2.0, 1.0, 0.0, 0.0)) == 1.0


def _text_run(text, x, y, height):
    return [make_glyph(c, x + i * 6.0, y=y, width=5.0, height=height) for i, c in enumerate(text)]


def test_drop_cap_does_not_fuse_the_lines_beside_it(clusterer):
    glyphs = (
        [make_glyph("T", 0.0, y=0.0, width=20.0, height=32.0)]
        + _text_run("he", 40.0, 0.0, 10.0)
        + _text_run("cat", 40.0, 11.0, 10.0)
        + _text_run("sat", 40.0, 22.0, 10.0)
    )

    ordered = clusterer.order_glyphs(glyphs)
    assert "".join(glyph.text for glyph in ordered) == "Thecatsat"

    layout = clusterer.cluster(glyphs)
    assert [word.text for word in layout.words] == ["T", "he", "cat", "sat"]


def test_tall_bracket_joins_its_best_band(clusterer):
    glyphs = (
        _text_run("alpha", 0.0, 0.0, 10.0)
        + _text_run("beta", 0.0, 12.0, 10.0)
        + [make_glyph("}", 50.0, y=0.0, width=5.0, height=21.0)]
    )

    ordered = clusterer.order_glyphs(glyphs)
    assert "".join(glyph.text for glyph in ordered) == "alpha}beta"

    layout = clusterer.cluster(glyphs)
    assert sorted(word.text for word in layout.words) == ["alpha", "beta", "}"]
