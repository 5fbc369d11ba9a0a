import argparse
import sys
from pathlib import Path

from disk_slice.__version__ import __version__
from disk_slice.app.session import SessionState, SliceRequest, SliceSession
from disk_slice.config.settings import SUPPORTED_TOOLS, SliceOptions, load_settings
from disk_slice.logging import LoggerFactory, setup_logging
from disk_slice.planning import parse_filesystem, parse_filesystem_list, split_from_args
from disk_slice.storage.exceptions import ExecutionError, InputError, SliceError

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

EPILOG = """\
examples:
  sudo disk-slice --disk /dev/sdb --count 3 --fstype ext4 --create-mounts
  sudo disk-slice --disk /dev/sdb --layout 60%,30%,10% --fstypes xfs,ext4,btrfs \\
      --mount-base /srv/vol --mount-now

notes:
  * A new GPT label is created on the target disk.
  * The disk is refused if it appears in use (mounted, has partitions with
    filesystems, LVM PVs, etc.).
"""


def build_parser(settings=None):
    settings = settings or load_settings()
    parser = argparse.ArgumentParser(
        prog="disk-slice",
        description=(
            "Safely partition a disk into N partitions (equal sizes or explicit "
            "percentages), create filesystems, and generate a commented /etc/fstab snippet."
        ),
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--disk", required=True, metavar="/dev/SDX",
        help="Target whole disk device (e.g., /dev/sdb, /dev/nvme1n1)",
    )

    split = parser.add_mutually_exclusive_group(required=True)
    split.add_argument("--count", metavar="N", help="Number of equal-size partitions")
    split.add_argument(
        "--layout", metavar="A%,B%,C%",
        help="Comma-separated percentages that sum to 100",
    )

    fs = parser.add_mutually_exclusive_group(required=True)
    fs.add_argument("--fstype", metavar="FS", help="Single filesystem type for all partitions")
    fs.add_argument("--fstypes", metavar="A,B,C", help="Per-partition filesystems (comma-separated)")

    parser.add_argument(
        "--label-prefix", default=settings["label_prefix"], metavar="NAME",
        help="Label prefix for filesystems (default: %(default)s)",
    )
    parser.add_argument(
        "--mount-base", default=settings["mount_base"], metavar="PATH",
        help="Base path for mountpoints (default: %(default)s)",
    )
    parser.add_argument(
        "--create-mounts", action="store_true",
        help="Create mountpoints (e.g., /mnt/data1, /mnt/data2, ...)",
    )
    parser.add_argument(
        "--mount-now", action="store_true",
        help="Mount them immediately (implies --create-mounts)",
    )
    parser.add_argument(
        "--use-parted", dest="tool", action="store_const", const="parted",
        default=settings["tool"],
        help="Use 'parted' instead of 'sgdisk' to create partitions",
    )
    parser.add_argument(
        "--align-mib", type=int, default=settings["align_mib"], metavar="N",
        help="Partition alignment in MiB (default: %(default)s)",
    )
    parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")
    parser.add_argument(
        "-n", "--dry-run", action="store_true", help="Print plan/commands only (no changes)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser


def options_from_args(args, settings) -> SliceOptions:
    log_dir = settings.get("log_dir")
    return SliceOptions(
        label_prefix=args.label_prefix,
        mount_base=args.mount_base,
        align_mib=args.align_mib,
        tool=args.tool if args.tool in SUPPORTED_TOOLS else SUPPORTED_TOOLS[0],
        snippet_dir=Path(settings["snippet_dir"]),
        create_mounts=args.create_mounts or args.mount_now,
        mount_now=args.mount_now,
        assume_yes=args.yes,
        dry_run=args.dry_run,
        verbose=args.verbose,
        log_dir=Path(log_dir) if log_dir else None,
    )


def request_from_args(args) -> SliceRequest:
    """Parse split and filesystem arguments; raises InputError before any device access."""
    split = split_from_args(args.count, args.layout)
    if args.fstypes is not None:
        filesystems = parse_filesystem_list(args.fstypes)
    else:
        filesystems = parse_filesystem(args.fstype)
    return SliceRequest(disk_path=args.disk, split=split, filesystems=filesystems)


def main(argv=None, session_factory=SliceSession):
    settings = load_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    options = options_from_args(args, settings)
    setup_logging(verbose=options.verbose, log_dir=options.log_dir)
    log = LoggerFactory.for_system()

    try:
        request = request_from_args(args)
        session = session_factory(options)
        result = session.run(request)
    except InputError as error:
        log.error(str(error))
        return EXIT_USAGE
    except ExecutionError as error:
        log.error(str(error))
        log.error(f"{args.disk} may be left partially configured; inspect it before retrying")
        return EXIT_FAILURE
    except SliceError as error:
        log.error(str(error))
        return EXIT_FAILURE

    if result.state is SessionState.DONE:
        log.info("Done.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
