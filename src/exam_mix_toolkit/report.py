"""解析结果统计与校验问题报告"""
from __future__ import annotations
from collections import Counter
import unicodedata

from exam_mix_toolkit.models import TYPE_ORDER, ParsedExam, QuestionType, ValidationIssue

TYPE_LABELS = {
    QuestionType.MCQ: "单选 (A-D)",
    QuestionType.TRUE_FALSE: "判断 (Đ/S)",
    QuestionType.SHORT_ANSWER: "简答 (Key)",
    QuestionType.ESSAY: "自由作答",
    QuestionType.UNKNOWN: "无法识别",
}


def _display_width(s: str) -> int:
    """计算字符串在终端的显示宽度"""
    return sum(2 if unicodedata.east_asian_width(c) in ("F", "W") else 1 for c in s)


def _pad_right(s: str, width: int) -> str:
    return s + " " * (width - _display_width(s))


def summarize(parsed: ParsedExam, issues: list[ValidationIssue] | None = None) -> dict:
    by_type = Counter(q.type for q in parsed.questions)
    by_section = Counter(q.section or "(无分部)" for q in parsed.questions)
    issues = issues or []
    return {
        "total": len(parsed.questions),
        "segments": len(parsed.segments),
        "by_type": {TYPE_LABELS[t]: by_type[t] for t in TYPE_ORDER if by_type.get(t)},
        "by_section": dict(by_section),
        "invalid": sum(1 for q in parsed.questions if not q.is_valid),
        "errors": sum(1 for i in issues if i.severity == "error"),
        "warnings": sum(1 for i in issues if i.severity == "warning"),
        "parse_warnings": list(parsed.parse_warnings),
    }


def print_summary(parsed: ParsedExam, issues: list[ValidationIssue] | None = None) -> None:
    s = summarize(parsed, issues)
    print(f"\n{'='*50}")
    print("📊 试卷结构")
    print(f"{'='*50}")
    print(f"总题数: {s['total']}  (段落分组 {s['segments']} 个)")

    for title, data in (("按题型", s["by_type"]), ("按分部", s["by_section"])):
        print(f"\n{title}:")
        if not data:
            print("  (无数据)")
            continue
        col_width = max(_display_width(k) for k in data) + 2
        for key, count in data.items():
            print(f"  {_pad_right(key, col_width)} {count:>4d}")

    if s["parse_warnings"]:
        print("\n⚠️  解析警告:")
        for w in s["parse_warnings"]:
            print(f"  {w}")

    print(f"\n校验: {s['errors']} 个错误, {s['warnings']} 个提醒, 无效题目 {s['invalid']} 道")
    print(f"{'='*50}\n")


def print_issues(issues: list[ValidationIssue]) -> None:
    if not issues:
        print("✅ 所有题目格式正确")
        return
    for issue in issues:
        mark = "❌" if issue.severity == "error" else "⚠️ "
        qtype = issue.question_type.value if issue.question_type else "?"
        print(f"{mark} {issue.question_label} [{qtype}] {issue.issue}")
        print(f"     → {issue.suggestion}")
