import argparse
import os
import sys
from typing import List, Optional

from .config.options import MergeOptions, SortStrategy, load_options
from .errors import XliffMergeError
from .file_utils import read_file_if_exists
from .logger import get_logger, set_verbose, setup_exception_hook
from .services.merge_service import ExtractMergeService

logger = get_logger(__name__)

_CHOICES = {"true": True, "false": False}


def _tri_state(special: str):
    def convert(value: str):
        if value == special:
            return value
        if value.lower() in _CHOICES:
            return _CHOICES[value.lower()]
        raise argparse.ArgumentTypeError(f"expected true, false or {special}, got {value!r}")
    return convert


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xliff-merge",
        description="Merge a freshly extracted XLIFF catalog into existing translation catalogs")
    parser.add_argument("source", help="Path to the extracted source catalog, e.g. src/locale/messages.xlf")
    parser.add_argument("-t", "--target", dest="target_files", action="append",
                        help="Target catalog relative to the source catalog's directory (repeatable)")
    parser.add_argument("--config", help="JSON options file (camelCase or snake_case keys)")
    parser.add_argument("--previous-source",
                        help="Source catalog as it was before extraction, keeps the source file order stable")
    parser.add_argument("--format", choices=["xlf", "xlif", "xliff", "xlf2", "xliff2"])
    parser.add_argument("--source-language-target", dest="source_language_target_file",
                        help="Target file that mirrors the source language")
    parser.add_argument("--sort", choices=[s.value for s in SortStrategy])
    parser.add_argument("--no-fuzzy-match", dest="fuzzy_match", action="store_false", default=None)
    parser.add_argument("--keep-translation-state", dest="reset_translation_state", action="store_false",
                        default=None, help="Keep the state of translated units whose source changed")
    parser.add_argument("--no-collapse-whitespace", dest="collapse_whitespace", action="store_false", default=None)
    parser.add_argument("--trim", action="store_true", default=None)
    parser.add_argument("--pretty-nested-tags", action="store_true", default=None)
    parser.add_argument("--sort-nested-tag-attributes", action="store_true", default=None)
    parser.add_argument("--expand-empty-targets", dest="self_closing_empty_targets", action="store_false",
                        default=None, help="Write <target></target> instead of <target/>")
    parser.add_argument("--include-context", type=_tri_state("sourceFileOnly"),
                        help="true, false or sourceFileOnly")
    parser.add_argument("--new-targets-blank", dest="new_translation_targets_blank", type=_tri_state("omit"),
                        help="true, false or omit")
    parser.add_argument("--initial-state", dest="initial_state_label")
    parser.add_argument("--remove-ids-with-prefix", action="append")
    parser.add_argument("--include-ids-with-prefix", action="append")
    parser.add_argument("-v", "--verbose", action="store_true", default=None)
    return parser


def options_from_args(args: argparse.Namespace) -> MergeOptions:
    """Options file first, command line values (where given) on top."""
    data = load_options(args.config).to_dict() if args.config else {}
    data["output_path"] = os.path.dirname(args.source) or "."
    data["source_file"] = os.path.basename(args.source)
    for name in ("target_files", "format", "source_language_target_file", "sort", "fuzzy_match",
                 "reset_translation_state", "collapse_whitespace", "trim", "pretty_nested_tags",
                 "sort_nested_tag_attributes", "self_closing_empty_targets", "include_context",
                 "new_translation_targets_blank", "initial_state_label", "remove_ids_with_prefix",
                 "include_ids_with_prefix", "verbose"):
        value = getattr(args, name)
        if value is not None:
            data[name] = value
    return MergeOptions.from_dict(data)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_exception_hook()
    try:
        options = options_from_args(args)
        set_verbose(options.verbose)
        logger.debug(f"Options: {options.to_dict()}")

        previous_source = read_file_if_exists(args.previous_source) if args.previous_source else None
        service = ExtractMergeService(options)
        id_mapping = service.run(previous_source)
    except (XliffMergeError, OSError) as e:
        logger.error(f"xliff-merge failed: {e}")
        return 1

    for old_id, new_id in id_mapping.items():
        logger.info(f"Id changed: {old_id} -> {new_id}")
    logger.info(f"Updated {', '.join(service.written_files())}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
