from __future__ import annotations
import click
import concurrent.futures
import json
import logging
import sys
from exam_mix_toolkit import __version__, patterns
from exam_mix_toolkit.assembler import generate_variants
from exam_mix_toolkit.classifier import apply_fix, validate_questions
from exam_mix_toolkit.config import (
    DEFAULT_COUNT, DEFAULT_START_CODE, ExamHeaderConfig, MixOptions, load_config,
)
from exam_mix_toolkit.docx_package import FormatError
from exam_mix_toolkit.exporters import available as available_formats
from exam_mix_toolkit.exporters.base import build_answer_matrix
from exam_mix_toolkit.bundle import write_bundle
from exam_mix_toolkit.models import QuestionBlock
from exam_mix_toolkit.prefs import DEFAULT_PREFS_PATH, PreferenceStore
from exam_mix_toolkit.report import print_issues, print_summary
from exam_mix_toolkit.segmenter import process_document


def parse_fix(raw: str) -> tuple[str, str]:
    """解析 --fix 参数："Câu 3=B" / "3=B" / "#12=5.5" """
    if "=" not in raw:
        raise click.BadParameter(f"格式应为 题号=答案，如 \"Câu 3=B\"，收到: {raw}")
    label, value = raw.split("=", 1)
    label, value = label.strip(), value.strip()
    if not label or not value:
        raise click.BadParameter(f"题号和答案都不能为空: {raw}")
    if label.isdigit():
        label = f"Câu {int(label)}"
    elif not label.startswith("#"):
        label = patterns.question_label(label)
    return label, value


def find_question(questions: list[QuestionBlock], label: str) -> QuestionBlock | None:
    """"#N" 按全局序号（从 1 开始），否则取第一个同名题号"""
    if label.startswith("#"):
        try:
            idx = int(label[1:]) - 1
        except ValueError:
            return None
        return questions[idx] if 0 <= idx < len(questions) else None
    return next((q for q in questions if q.label == label), None)


def _load_exam(file: str):
    try:
        return process_document(file)
    except (FormatError, OSError) as e:
        click.echo(f"[ERROR] {e}")
        sys.exit(1)


@click.group()
@click.version_option(__version__, prog_name="exam-mix")
@click.option("-c", "--config", "config_path", default="config.yaml", help="配置文件路径")
@click.option("--prefs", "prefs_path", default=str(DEFAULT_PREFS_PATH), help="偏好文件路径")
@click.option("-v", "--verbose", is_flag=True, help="输出详细日志")
@click.pass_context
def cli(ctx, config_path, prefs_path, verbose):
    """Word 试卷混题工具：拆题、校验、生成多份乱序试卷与答案表"""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config_path)
    ctx.obj["prefs"] = PreferenceStore(prefs_path).load()


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--ai", "use_ai", is_flag=True, help="调用 AI 对题目内容给出审阅意见")
@click.pass_context
def check(ctx, file, use_ai):
    """只解析与校验，不生成试卷"""
    cfg = ctx.obj["config"]
    parsed = _load_exam(file)
    issues = validate_questions(parsed.questions)

    print_summary(parsed, issues)
    print_issues(issues)

    if use_ai:
        from exam_mix_toolkit.ai import submit_review

        ai_cfg = cfg.get("ai", {})
        click.echo("\n🤖 AI 审阅中...")
        future = submit_review(parsed.questions, ai_cfg)
        try:
            result = future.result(timeout=float(ai_cfg.get("timeout", 60.0)) + 5)
        except concurrent.futures.TimeoutError:
            click.echo("[WARN] AI 审阅超时，已跳过")
        else:
            click.echo(result.message)

    if any(i.severity == "error" for i in issues):
        sys.exit(2)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("-n", "--count", default=None, type=click.IntRange(min=1), help="生成份数（默认 4）")
@click.option("--start-code", default=None, type=int, help="起始编号（默认沿用上次的下一个编号）")
@click.option("--shuffle-questions/--keep-order", default=True, help="是否打乱题目顺序")
@click.option("--shuffle-options/--keep-options", default=True, help="是否打乱选项顺序")
@click.option("--header/--no-header", "header_enabled", default=None, help="是否生成标准试卷头与页脚")
@click.option("--school", "school_name", default=None, help="学校名称")
@click.option("--sub-name", default=None, help="教研组 / 单位")
@click.option("--title", "exam_title", default=None, help="考试名称")
@click.option("--subject", default=None, help="科目")
@click.option("--time", default=None, help="考试时间")
@click.option("--year", default=None, help="学年")
@click.option("--footer", "footer_text", default=None, help="页脚文字")
@click.option("--save-header", is_flag=True, help="保存本次试卷头配置，下次默认使用")
@click.option("--fix", "fixes", multiple=True, help='人工补答案，如 "Câu 3=B"、"#12=5.5"')
@click.option("--seed", default=None, type=int, help="随机种子（便于复现）")
@click.option("-f", "--format", "answer_format", default=None, help="答案表格式: xlsx/csv/json/pdf")
@click.option("-o", "--output", default=None, help="输出目录或 .zip 路径")
@click.option("-y", "--yes", is_flag=True, help="存在校验错误时不再确认，直接生成")
@click.pass_context
def mix(ctx, file, count, start_code, shuffle_questions, shuffle_options, header_enabled,
        school_name, sub_name, exam_title, subject, time, year, footer_text,
        save_header, fixes, seed, answer_format, output, yes):
    """生成多份乱序试卷 + 答案表，打包为 zip"""
    cfg = ctx.obj["config"]
    prefs: PreferenceStore = ctx.obj["prefs"]

    # 参数优先级：命令行 > 上次保存的偏好 > config.yaml > 默认值
    count = count or int(cfg.get("count", DEFAULT_COUNT))
    if start_code is None:
        start_code = prefs.saved_next_code or int(cfg.get("start_code", DEFAULT_START_CODE))
    answer_format = answer_format or cfg.get("answer_format", "xlsx")
    output = output or cfg.get("output_dir", "./output")

    if answer_format not in available_formats():
        raise click.BadParameter(
            f"未知格式: {answer_format}，可选: {available_formats()}", param_hint="-f/--format",
        )

    header = ExamHeaderConfig.from_dict(
        {**(cfg.get("header") or {}), **prefs.saved_header},
        enabled=header_enabled, school_name=school_name, sub_name=sub_name,
        exam_title=exam_title, subject=subject, time=time, year=year,
        footer_text=footer_text,
    )

    # 1. 解析
    click.echo("📂 解析试卷...")
    parsed = _load_exam(file)
    if not parsed.questions:
        click.echo("[ERROR] 未识别到任何题目（题号应以 \"Câu N\" 开头），退出。")
        sys.exit(1)

    # 2. 人工修正
    for raw in fixes:
        label, value = parse_fix(raw)
        q = find_question(parsed.questions, label)
        if q is None:
            click.echo(f"[WARN] 找不到题目: {label}")
        elif apply_fix(q, value):
            click.echo(f"  ✏️  {q.label} ← {value}")
        else:
            click.echo(f"[WARN] {q.label} ({q.type.value}) 无法应用修正: {value}")

    # 3. 校验
    issues = validate_questions(parsed.questions)
    print_summary(parsed, issues)
    print_issues(issues)
    errors = sum(1 for i in issues if i.severity == "error")
    if errors and not yes:
        click.confirm(f"仍有 {errors} 个错误，生成的答案表可能不完整。继续？", abort=True)

    # 4. 生成
    click.echo(f"🔀 生成 {count} 份试卷（编号 {start_code} - {start_code + count - 1}）...")
    mix_options = MixOptions(shuffle_questions=shuffle_questions, shuffle_options=shuffle_options)
    try:
        variants = generate_variants(parsed, count, start_code, header, mix_options, seed)
    except FormatError as e:
        click.echo(f"[ERROR] {e}")
        sys.exit(1)

    # 5. 答案表 + 打包
    matrix = build_answer_matrix(variants, len(parsed.questions))
    bundle_path = write_bundle(variants, matrix, output, answer_format)

    prefs.save_next_code(start_code + count)
    if save_header:
        prefs.save_header(header)

    click.echo(f"✅ 完成: {bundle_path}")


@cli.command()
@click.option("--reset", is_flag=True, help="清除已保存的偏好")
@click.pass_context
def prefs(ctx, reset):
    """查看或清除已保存的试卷头配置与下一个起始编号"""
    store: PreferenceStore = ctx.obj["prefs"]
    if reset:
        store.clear()
        click.echo(f"已清除: {store.path}")
        return
    click.echo(f"偏好文件: {store.path}")
    click.echo(json.dumps(store.as_dict(), ensure_ascii=False, indent=2))


def main():
    cli()


if __name__ == "__main__":
    main()
