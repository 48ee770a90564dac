import random
from collections import Counter
from docx.text.paragraph import Paragraph
from exam_mix_toolkit import patterns
from exam_mix_toolkit.models import QuestionBlock, QuestionType
from exam_mix_toolkit.ooxml import has_underline, node_text, remove_key_tags, W_T
from exam_mix_toolkit.resolver import resolve_answer
from exam_mix_toolkit.shuffle import (
    balanced_keys, layout_question, order_questions, reformat_mcq_layout,
    shuffle_options, shuffled,
)
from samples import make_paragraph

MCQ_PARAGRAPHS = [
    ["Câu 1: Giá trị của 2 + 2 là"],
    ["A. 3"],
    ["B. 5"],
    [("C.", True), (" 4", False)],
    ["D. 6"],
]

TF_PARAGRAPHS = [
    ["Câu 1: Cho hàm số y = x^2."],
    ["a) Hàm số chẵn."],
    [("b) Đồ thị qua gốc tọa độ.", True)],
    ["c) Nghịch biến trên R."],
    [("d) Giá trị nhỏ nhất bằng 0.", True)],
]


def _nodes(paragraphs):
    return [make_paragraph(runs) for runs in paragraphs]


def _option_bodies(nodes):
    """去掉标签后的选项内容"""
    out = []
    for n in nodes:
        text = node_text(n)
        m = patterns.match_option(text)
        if m:
            out.append(text[m.end():].strip())
    return out


def test_resolve_mcq_underlined_label():
    assert resolve_answer(_nodes(MCQ_PARAGRAPHS), QuestionType.MCQ) == "C"


def test_resolve_mcq_inline_options_uses_underline_position():
    nodes = _nodes([
        ["Câu 1: 2 + 2 = ?"],
        ["A. 3   B. 5   ", ("C. 4", True), "   D. 6"],
    ])
    assert resolve_answer(nodes, QuestionType.MCQ) == "C"

    # 只给内容加下划线，取前面最近的标记
    nodes = _nodes([["Câu 1: ?"], ["A. 3   B.", (" 5", True), "   C. 4   D. 6"]])
    assert resolve_answer(nodes, QuestionType.MCQ) == "B"


def test_resolve_mcq_inline_without_marker_before_underline():
    nodes = _nodes([["Câu 1: ?"], [("Đáp án", True), " A. 3  B. 5  C. 4"]])
    assert resolve_answer(nodes, QuestionType.MCQ) == ""


def test_resolve_true_false_sequence():
    assert resolve_answer(_nodes(TF_PARAGRAPHS), QuestionType.TRUE_FALSE) == "SĐSĐ"


def test_resolve_short_answer_and_essay():
    nodes = _nodes([["Câu 1: Tính 3 x 4. <Key= 12 >"]])
    assert resolve_answer(nodes, QuestionType.SHORT_ANSWER) == "12"
    assert resolve_answer(nodes, QuestionType.ESSAY) == ""


def test_shuffle_pins_correct_option_to_target():
    for target in "ABCD":
        nodes = _nodes(MCQ_PARAGRAPHS)
        before = Counter(_option_bodies(nodes))
        out = shuffle_options(nodes, QuestionType.MCQ, target, random.Random(7))

        assert Counter(_option_bodies(out)) == before
        assert sum(1 for n in out[1:] if has_underline(n)) == 1
        assert resolve_answer(out, QuestionType.MCQ) == target
        assert [node_text(n)[:2] for n in out[1:]] == ["A.", "B.", "C.", "D."]
        assert node_text(out[0]) == "Câu 1: Giá trị của 2 + 2 là"


def test_shuffle_target_wraps_modulo_option_count():
    nodes = _nodes([["Câu 1: ?"], [("A. đúng", True)], ["B. sai"], ["C. sai nữa"]])
    out = shuffle_options(nodes, QuestionType.MCQ, "D", random.Random(1))
    assert resolve_answer(out, QuestionType.MCQ) == "A"


def test_shuffle_true_false_keeps_separator_and_items():
    nodes = _nodes(TF_PARAGRAPHS)
    before = Counter(_option_bodies(nodes))
    out = shuffle_options(nodes, QuestionType.TRUE_FALSE, rng=random.Random(3))
    assert Counter(_option_bodies(out)) == before
    assert [node_text(n)[:2] for n in out[1:]] == ["a)", "b)", "c)", "d)"]
    assert resolve_answer(out, QuestionType.TRUE_FALSE).count("Đ") == 2


def test_shuffle_mcq_forces_dot_separator():
    nodes = _nodes([["Câu 1: ?"], ["A) 1"], [("B) 2", True)], ["C) 3"], ["D) 4"]])
    out = shuffle_options(nodes, QuestionType.MCQ, "A", random.Random(5))
    assert [node_text(n)[:2] for n in out[1:]] == ["A.", "B.", "C.", "D."]


def test_shuffle_needs_two_options():
    nodes = _nodes([["Câu 1: ?"], ["A. duy nhất"]])
    out = shuffle_options(nodes, QuestionType.MCQ, "B", random.Random(0))
    assert out == nodes
    assert node_text(out[1]) == "A. duy nhất"


def test_shuffled_returns_copy():
    items = list(range(10))
    out = shuffled(items, random.Random(42))
    assert sorted(out) == items
    assert items == list(range(10))


def test_balanced_keys_counts():
    rng = random.Random(11)
    for n in range(0, 41):
        keys = balanced_keys(n, rng)
        assert len(keys) == n
        counts = Counter(keys)
        assert set(counts) <= set("ABCD")
        for letter in "ABCD":
            assert n // 4 <= counts.get(letter, 0) <= n // 4 + 1


def test_order_questions_groups_by_type():
    def q(i, qtype):
        return QuestionBlock(id=str(i), original_index=i, label=f"Câu {i}", type=qtype)

    questions = [
        q(0, QuestionType.SHORT_ANSWER), q(1, QuestionType.MCQ),
        q(2, QuestionType.TRUE_FALSE), q(3, QuestionType.MCQ), q(4, QuestionType.UNKNOWN),
    ]
    ordered = order_questions(questions, shuffle=True, rng=random.Random(2))
    assert [x.type for x in ordered] == [
        QuestionType.MCQ, QuestionType.MCQ, QuestionType.TRUE_FALSE,
        QuestionType.SHORT_ANSWER, QuestionType.UNKNOWN,
    ]

    fixed = order_questions(questions, shuffle=True, rng=random.Random(2), fixed=True)
    assert [x.id for x in fixed] == ["1", "3", "2", "0", "4"]


def test_layout_noop_unless_four_options():
    nodes = _nodes([["A. 1"], ["B. 2"], ["C. 3"]])
    texts = [node_text(n) for n in nodes]
    assert reformat_mcq_layout(nodes) is nodes
    assert [node_text(n) for n in nodes] == texts


def test_layout_short_options_one_line():
    nodes = _nodes([["A. 1"], ["B. 2"], ["C. 3"], ["D. 4"]])
    out = reformat_mcq_layout(nodes, 9000)
    assert len(out) == 1
    assert Paragraph(out[0], None).text == "A. 1\tB. 2\tC. 3\tD. 4"
    stops = [ts.position.twips for ts in Paragraph(out[0], None).paragraph_format.tab_stops]
    assert stops == [2250, 4500, 6750]


def test_layout_medium_options_two_lines():
    nodes = _nodes([
        ["A. Hàm số đồng biến trên R"], ["B. Hàm số nghịch biến"],
        ["C. Hàm số có cực đại"], ["D. Hàm số không có cực trị"],
    ])
    out = reformat_mcq_layout(nodes, 9000)
    assert len(out) == 2
    assert Paragraph(out[0], None).text == "A. Hàm số đồng biến trên R\tB. Hàm số nghịch biến"


def test_layout_long_options_untouched():
    long_text = "x" * 40
    nodes = _nodes([[f"A. {long_text}"], ["B. 2"], ["C. 3"], ["D. 4"]])
    assert reformat_mcq_layout(nodes) == nodes


def test_layout_question_skips_stem():
    nodes = _nodes([["Câu 1: ?"], ["A. 1"], ["B. 2"], ["C. 3"], ["D. 4"], ["Ghi chú"]])
    out = layout_question(nodes)
    assert len(out) == 3
    assert node_text(out[0]) == "Câu 1: ?"
    assert node_text(out[-1]) == "Ghi chú"


def test_remove_key_tag_split_across_runs():
    p = make_paragraph(["Đáp số: 12 ", "<Ke", "y=", "5>", " xong"])
    assert remove_key_tags(p) == 1
    assert [t.text for t in p.iter(W_T)] == ["Đáp số: 12", "", "", "", " xong"]
