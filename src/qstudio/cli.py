"""
Command line entry point: ``qstudio <command> EXPORT_JSON``.

Commands:
    stats     print structure and content counts as JSON
    validate  print pre-publish defects; exit status 1 when any exist
    record    print the flat published record as JSON
    to-yaml   print the questionnaire as YAML
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from qstudio.config import StudioSettings, load_settings
from qstudio.errors import ImportFormatError
from qstudio.logging_setup import configure_logging
from qstudio.model import Questionnaire
from qstudio.serialization import import_from_json, questionnaire_to_yaml, to_dataverse_record
from qstudio.stats import calculate_questionnaire_stats
from qstudio.validator import validate_questionnaire

EXIT_OK = 0
EXIT_DEFECTS = 1
EXIT_BAD_INPUT = 2


def _load(path: str) -> Questionnaire:
    text = Path(path).read_text(encoding="utf-8")
    return import_from_json(text).questionnaire


def cmd_stats(questionnaire: Questionnaire, args, settings: StudioSettings) -> int:
    stats = calculate_questionnaire_stats(questionnaire)
    print(json.dumps(stats.as_dict(), indent=settings.pretty_indent))
    return EXIT_OK


def cmd_validate(questionnaire: Questionnaire, args, settings: StudioSettings) -> int:
    report = validate_questionnaire(questionnaire)
    if report.is_valid:
        print("No issues found")
        return EXIT_OK

    print(f"{report.error_count} issue(s) must be fixed before publishing:")
    for title, messages in report.as_dict().items():
        if messages:
            print(f"\n{title.capitalize()}:")
            for message in messages:
                print(f"  - {message}")
    return EXIT_DEFECTS


def cmd_record(questionnaire: Questionnaire, args, settings: StudioSettings) -> int:
    record = to_dataverse_record(
        questionnaire,
        schema_version=settings.schema_version,
        default_version=settings.default_record_version,
    )
    payload = record.to_attributes() if args.attributes else record.as_dict()
    print(json.dumps(payload, indent=settings.pretty_indent))
    return EXIT_OK


def cmd_to_yaml(questionnaire: Questionnaire, args, settings: StudioSettings) -> int:
    sys.stdout.write(questionnaire_to_yaml(questionnaire))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qstudio", description="Inspect exported questionnaires")
    parser.add_argument("--settings", help="Path to a YAML settings file (default: qstudio.yaml)")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, func, help_text in (
        ("stats", cmd_stats, "Print structure and content counts"),
        ("validate", cmd_validate, "Check the questionnaire can be published"),
        ("record", cmd_record, "Print the flat published record"),
        ("to-yaml", cmd_to_yaml, "Print the questionnaire as YAML"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("export_json", help="Path to an exported questionnaire JSON file")
        p.set_defaults(func=func)
        if name == "record":
            p.add_argument("--attributes", action="store_true", help="Use record column names")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.settings)
    configure_logging(settings)

    try:
        questionnaire = _load(args.export_json)
    except OSError as e:
        print(f"Cannot read {args.export_json}: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except ImportFormatError as e:
        print(e.user_message, file=sys.stderr)
        return EXIT_BAD_INPUT

    return args.func(questionnaire, args, settings)


if __name__ == "__main__":
    sys.exit(main())
