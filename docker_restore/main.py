import argparse
import os
import shutil
import sys
from pathlib import Path

from docker_restore.__version__ import __version__
from docker_restore.config.settings import CONFIRM_TIMEOUT_SECONDS, load_config
from docker_restore.engine import ComposeLauncher, DockerCLI
from docker_restore.logging import LoggerFactory, setup_logging
from docker_restore.restore import RestorePipeline
from docker_restore.storage.exceptions import (
    MissingToolError,
    PrivilegeError,
    RestoreError,
    UsageError,
)
from docker_restore.ui.confirmation import ask_confirmation, is_affirmative

REQUIRED_TOOLS = ("docker", "tar", "gzip")

log = LoggerFactory.for_system()


def build_parser():
    parser = argparse.ArgumentParser(
        prog="docker-restore",
        description="Restore the latest full Docker backup (volumes, images, "
        "portainer_data and compose files).",
    )
    parser.add_argument(
        "snapshot",
        nargs="?",
        type=Path,
        help="Backup directory to restore (default: most recent full backup)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate everything; do not modify volumes, images, containers or files",
    )
    parser.add_argument(
        "--stop", action="store_true", help="Stop running containers before restoring"
    )
    parser.add_argument(
        "--compose-up",
        action="store_true",
        help="Run 'compose up -d' for every restored compose file at the end",
    )
    parser.add_argument(
        "--resume-running",
        action="store_true",
        help="With --stop, start again only the containers that were running",
    )
    parser.add_argument(
        "--assume-yes", action="store_true", help="Skip the interactive confirmation"
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Log executed commands")
    parser.add_argument("--backup-dir", type=Path, help="Directory holding full backups")
    parser.add_argument("--compose-dir", type=Path, help="Where compose files are restored")
    parser.add_argument("--log-file", type=Path, help="Persistent log file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def check_privileges(geteuid=os.geteuid):
    euid = geteuid()
    if euid != 0:
        raise PrivilegeError(euid)


def check_required_tools(tools=REQUIRED_TOOLS, which=shutil.which):
    for tool in tools:
        if not which(tool):
            raise MissingToolError(tool)


def confirm(config):
    """Ask before restoring; returns False unless the operator confirms in time."""
    if config.assume_yes:
        return True
    try:
        answer = ask_confirmation(config.confirm_token, CONFIRM_TIMEOUT_SECONDS)
    except EOFError:
        log.info("No answer (end of input); restore cancelled.")
        return False
    if answer is None:
        log.info(
            f"No answer within {CONFIRM_TIMEOUT_SECONDS}s; "
            "restore cancelled (timeout)."
        )
        return False
    if not is_affirmative(answer, config.confirm_token):
        log.info(f"Restore cancelled by the user (answer: '{answer or 'empty'}').")
        return False
    return True


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(
        dry_run=args.dry_run,
        stop_containers=args.stop,
        compose_up=args.compose_up,
        resume_running=args.resume_running,
        assume_yes=args.assume_yes,
        debug=args.debug,
        snapshot_path=args.snapshot,
        backup_dir=args.backup_dir,
        compose_restore_dir=args.compose_dir,
        log_file=args.log_file,
    )

    setup_logging(None, debug=config.debug)
    try:
        check_privileges()
        check_required_tools()
    except UsageError as error:
        log.error(f"ERROR: {error}")
        return 1

    setup_logging(config.log_file, debug=config.debug)
    log.info("Restore started")

    if not confirm(config):
        return 0

    engine = DockerCLI()
    launcher = ComposeLauncher.detect()
    pipeline = RestorePipeline(config, engine, launcher=launcher)
    try:
        report = pipeline.run()
    except RestoreError:
        log.error("Restore aborted.")
        return 1
    except KeyboardInterrupt:
        log.warning(
            "Interrupted. The host may be partially restored; inspect it and "
            "run the restore again."
        )
        return 130
    return 0 if report.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
