import pytest

from storyslides.services.segmenter import count_words, pack_slides, split_sentences


LONG_TEXT = (
    "The rain had not stopped for three days! Mara counted the drops on the glass. "
    "Was anyone coming back for her? The lighthouse keeper had said he would return by dawn. "
    "Dawn came and went... She lit the lamp anyway. The sea did not care about promises?! "
    "Somewhere below, a bell rang twice. Then silence. Then the door."
)


def test_example_packs_into_one_slide():
    slides = pack_slides("ch-1", "Hello world. This is fine! Really?", word_limit=100)

    assert len(slides) == 1
    assert slides[0].order_number == 1
    assert slides[0].content == "Hello world. This is fine. Really."
    assert slides[0].chapter_id == "ch-1"


@pytest.mark.parametrize("text", ["", "   ", "\n\t", "...", "?! . !"])
def test_blank_text_yields_no_slides(text):
    assert pack_slides("ch-1", text) == []


def test_split_sentences_discards_empty_fragments():
    assert split_sentences("  One.. Two?!   Three  ") == ["One", "Two", "Three"]


def test_greedy_packing_flushes_when_limit_exceeded():
    slides = pack_slides("ch-1", "One two. Three four. Five six seven.", word_limit=4)

    assert [s.content for s in slides] == ["One two. Three four.", "Five six seven."]
    assert [s.order_number for s in slides] == [1, 2]


def test_oversized_sentence_becomes_its_own_slide():
    slides = pack_slides("ch-1", "a b c d e f. g.", word_limit=3)

    assert [s.content for s in slides] == ["a b c d e f.", "g."]


def test_sentence_exactly_at_limit_fits():
    slides = pack_slides("ch-1", "one two three. four", word_limit=4)
    assert [s.content for s in slides] == ["one two three. four."]


@pytest.mark.parametrize("limit", [1, 3, 7, 12, 25, 400])
def test_slides_reconstruct_sentence_sequence(limit):
    slides = pack_slides("ch-1", LONG_TEXT, word_limit=limit)
    rebuilt = split_sentences(" ".join(s.content for s in slides))

    assert rebuilt == split_sentences(LONG_TEXT)


@pytest.mark.parametrize("limit", [1, 3, 7, 12, 25, 400])
def test_order_numbers_are_contiguous_from_one(limit):
    slides = pack_slides("ch-1", LONG_TEXT, word_limit=limit)
    assert [s.order_number for s in slides] == list(range(1, len(slides) + 1))


@pytest.mark.parametrize("limit", [1, 3, 7, 12, 25])
def test_only_single_sentence_slides_exceed_limit(limit):
    for slide in pack_slides("ch-1", LONG_TEXT, word_limit=limit):
        if slide.word_count > limit:
            assert len(split_sentences(slide.content)) == 1


def test_count_words_uses_whitespace():
    assert count_words("  Hello \n world\tagain ") == 3
    assert count_words("") == 0
