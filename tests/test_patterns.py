from exam_mix_toolkit import patterns


def test_question_start_variants():
    assert patterns.is_question_start("Câu 1: Tính")
    assert patterns.is_question_start("  câu 12. abc")
    assert patterns.is_question_start("Bài 3 Cho hàm số")
    assert patterns.is_question_start("Câu hỏi 7: ...")
    assert not patterns.is_question_start("Câu trả lời đúng là")
    assert not patterns.is_question_start("A. Câu 1")


def test_question_label_normalized():
    assert patterns.question_label("Bài 3. Tính") == "Câu 3"
    assert patterns.question_label("Câu hỏi 10: x") == "Câu 10"
    assert patterns.question_label("Câu 05 abc") == "Câu 05"
    assert patterns.question_label("không phải câu hỏi") == "Câu ?"


def test_section_slots():
    assert patterns.is_section_header("PHẦN I. Trắc nghiệm")
    assert patterns.section_slot("PHẦN I. Trắc nghiệm") == 1
    assert patterns.section_slot("PHẦN III. Trả lời ngắn") == 3
    assert patterns.section_slot("Phần IV. Tự luận") == 4
    assert patterns.section_slot("PHẦN V. Khác") is None
    assert patterns.section_slot("") is None


def test_free_response_section():
    assert patterns.is_free_response_section("PHẦN IV. Bài tập")
    assert patterns.is_free_response_section("PHẦN III. TỰ LUẬN")
    assert not patterns.is_free_response_section("PHẦN II. Đúng sai")
    assert not patterns.is_free_response_section("")


def test_option_matching():
    m = patterns.match_option("  b) Hàm số chẵn")
    assert m.group("letter") == "b"
    assert m.group("sep") == ")"
    assert patterns.match_option("C: 5").group("sep") == ":"
    assert patterns.match_option("Cho hàm số") is None
    assert patterns.match_option_loose(" D ").group("letter") == "D"
    assert patterns.match_option_loose("D. 5") is None


def test_count_line_options():
    text = "Câu 1: abc\nA. 1\nB. 2\nC. 3\nD. 4"
    assert patterns.count_line_options(text) == (4, 0)
    text = "Câu 1: abc\na) x\nb) y"
    assert patterns.count_line_options(text) == (0, 2)


def test_inline_options():
    assert patterns.has_inline_options("A. 1   B. 2   C. 3   D. 4")
    assert not patterns.has_inline_options("A. 1")


def test_key_extract_and_strip():
    assert patterns.extract_key("Kết quả <Key = 2,5 >") == "2,5"
    assert patterns.extract_key("không có") is None
    assert patterns.strip_key_tags("Tính 3 x 4. <Key=12> xong") == "Tính 3 x 4. xong"
