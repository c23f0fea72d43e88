from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from mcp_log_rules_server.core.engine import analyze_log, resolve_engine_config
from mcp_log_rules_server.core.grouping import SortOrder, group_issues, sort_groups, use_system_collation
from mcp_log_rules_server.core.log_source import read_log_text
from mcp_log_rules_server.core.rule_store import JsonRuleStore, default_store
from mcp_log_rules_server.core.rulebook import select_rules
from mcp_log_rules_server.tools.analyze import shape_report


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Analyze a build log with the rule library.")
    p.add_argument("log_path")
    p.add_argument("--rules", default=None, help="Rule store JSON file (default: LOG_RULES_STORE_PATH)")
    p.add_argument("--rule-id", dest="rule_ids", action="append", default=None, help="Only use this rule (repeatable)")
    p.add_argument("--filter", dest="filter_text", default=None, help="Substring filter over rule name / matched line")
    p.add_argument(
        "--sort",
        choices=[o.value for o in SortOrder],
        default=SortOrder.SEVERITY_DESC.value,
        help="Group order (default: severity_desc)",
    )
    p.add_argument("--context", action="store_true", help="Print context lines for each issue")
    p.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Print the report as JSON (grouped, honours --filter and --sort)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Log rule compilation and timing")
    return p


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    use_system_collation()
    path = Path(args.log_path)

    try:
        store = JsonRuleStore(args.rules) if args.rules else default_store()
        rules = select_rules(store.load(), args.rule_ids)
        text = asyncio.run(read_log_text(path))
        report = analyze_log(text, path.name, rules, cfg=resolve_engine_config())
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    if args.as_json:
        shaped = shape_report(
            report,
            filter_text=args.filter_text,
            sort=args.sort,
            include_context=args.context,
            limit=max(1, len(report.issues)),
        )
        print(json.dumps(shaped, ensure_ascii=False, indent=2))
        return

    for err in report.compile_errors:
        print(f"[skipped rule] {err.rule_name}: {err.raw_error}", file=sys.stderr)

    groups = sort_groups(group_issues(report.issues, args.filter_text), args.sort)
    for g in groups:
        print(f"[{g.severity.value}] {g.rule_name} x{g.count}")
        for issue in g.issues:
            print(f"  {issue.line_number}: {issue.match_content}")
            if args.context:
                for line in issue.context:
                    print(f"      | {line}")

    print(
        f"\nFound {len(report.issues)} issues in {report.total_lines} lines "
        f"({report.duration_ms}ms)."
    )


if __name__ == "__main__":
    main()
