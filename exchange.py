#!/usr/bin/env python3
"""
Unified Grade-Sheet Exchange (command line)

Exports a group's grades for one discipline to an Excel grade sheet, or
imports a filled grade sheet back into the Unified API.

Usage:
    1. Set UNIFIED_API_BASE and UNIFIED_API_TOKEN (or pass --config)
    2. python exchange.py export --group IPZ-21 --discipline "Programming"
    3. Edit the grades in Excel, keeping the first five rows intact
    4. python exchange.py import Admin_Grades_IPZ-21_Programming.xlsx --group IPZ-21 --discipline "Programming"
"""

import argparse
import sys
from pathlib import Path

from unified import GradesWorkspace, UnifiedClient, load_config, validate_config
from unified.app_logger import setup_logging
from unified.errors import GradeSheetError, ImportAbortedError, UnifiedError
from unified.models import Role
from unified.validators import validate_grade_sheet
from unified.excel_generator import read_worksheet


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export or import Unified grade sheets.")
    parser.add_argument("--config", help="Path to a JSON config file")
    parser.add_argument("--role", help="admin or teacher (default: role of the API token)")

    sub = parser.add_subparsers(dest="command", required=True)

    export_cmd = sub.add_parser("export", help="Download a grade sheet")
    export_cmd.add_argument("--group", required=True, help="Group code, e.g. IPZ-21")
    export_cmd.add_argument("--discipline", required=True)
    export_cmd.add_argument("--out", help="Output directory (default: current directory)")

    import_cmd = sub.add_parser("import", help="Upload a filled grade sheet")
    import_cmd.add_argument("file", help="Path to the .xlsx file")
    import_cmd.add_argument("--group", required=True)
    import_cmd.add_argument("--discipline", required=True)
    import_cmd.add_argument("--dry-run", action="store_true", help="Validate only, send nothing")

    return parser


def open_workspace(args, config: dict) -> GradesWorkspace:
    """Create the API client and a workspace for the requested role."""
    client = UnifiedClient.from_config(config)
    role = Role.parse(args.role) if args.role else client.check_token().role
    workspace = GradesWorkspace(client, role, config)
    workspace.select(args.group, args.discipline)
    return workspace


def run_export(workspace: GradesWorkspace, out_dir: str | None) -> int:
    filename, data = workspace.export()
    target = Path(out_dir or ".") / filename
    target.write_bytes(data)
    print(f"✓ Saved {len(workspace.assessments)} students to {target}")
    return 0


def run_import(workspace: GradesWorkspace, path: str, dry_run: bool) -> int:
    if dry_run:
        submissions = validate_grade_sheet(read_worksheet(path), workspace.context())
        print(f"✓ {path} is valid: {len(submissions)} grade(s) would be submitted")
        return 0

    try:
        report = workspace.import_file(path)
    except ImportAbortedError as e:
        print(f"❌ {e}")
        for result in e.report.results:
            s = result.submission
            line = f"   {result.status:<14} EDBO ID {s.edbo_id} {s.date} -> {s.grade}"
            if result.error:
                line += f" ({result.error})"
            print(line)
        if e.report.refetch_error:
            print(f"⚠️  Grades could not be reloaded: {e.report.refetch_error}")
        return 1

    print(f"✓ {report.summary()}")
    if report.refetch_error:
        print(f"⚠️  Grades could not be reloaded: {report.refetch_error}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.get("log_level"))

    errors = [i for i in validate_config(config) if i["type"] == "error"]
    if errors:
        for issue in errors:
            print(f"❌ {issue['message']}")
        return 2

    try:
        workspace = open_workspace(args, config)
        if args.command == "export":
            return run_export(workspace, args.out)
        return run_import(workspace, args.file, args.dry_run)
    except GradeSheetError as e:
        print(f"❌ Import rejected: {e}")
        return 1
    except UnifiedError as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
