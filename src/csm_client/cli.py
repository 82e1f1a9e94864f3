#!/usr/bin/env python3
"""
csm-node: update boot images and desired configuration of CSM nodes,
power them on or off, and list CFS configurations.

Examples:
  csm-node update node --nodes x1000c0s0b0n0,x1000c0s0b0n1 --hsm-group zinal \\
      --boot-image-configuration zinal-cos-2.3 --desired-configuration zinal-cos-2.3
  csm-node apply node reset --nodes x1000c0s0b0n0 --reason "kernel update"
  csm-node get configuration --name zinal --limit 5
"""

import argparse
import logging
from typing import List, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from .client import CSMClient
from .exceptions import (
    ConfirmationDeclined,
    CSMError,
    NotFoundError,
    PartialApplyError,
    UpstreamError,
    ValidationError,
)
from .utils.config import DEFAULT_CONFIG_FILE, load_csm_config
from .utils.display import (
    display_committed_effects,
    display_configurations,
    display_error,
    display_node_list,
    display_power_result,
    display_update_result,
    display_warning,
)
from .workflow import (
    AssumeYesProvider,
    ConfirmationProvider,
    ConsoleConfirmationProvider,
    NodePowerWorkflow,
    NodeUpdateRequest,
    NodeUpdateWorkflow,
    PowerCommand,
)
from .workflow.power import DEFAULT_REASON

console = Console()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def configure_logging(verbose: bool = False) -> None:
    """Configure standard logging with rich handler."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def parse_node_list(value: str) -> List[str]:
    """Split a comma separated node list; blanks are kept so validation can reject them."""
    return [node.strip() for node in value.split(",")]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="csm-node",
        description="Node update and reboot orchestration for CSM clusters.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config-file",
        default=str(DEFAULT_CONFIG_FILE),
        help=f"Path to the YAML configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--site", help="Site to talk to (default: default_site from the config file)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    verbs = parser.add_subparsers(dest="verb", required=True)

    # update node
    update = verbs.add_parser("update", help="Update nodes")
    update_targets = update.add_subparsers(dest="target", required=True)
    update_node = update_targets.add_parser(
        "node", help="Change boot image and/or desired configuration of nodes"
    )
    update_node.add_argument(
        "--nodes", required=True, type=parse_node_list, help="Comma separated list of xnames"
    )
    update_node.add_argument("--hsm-group", help="HSM group the nodes must belong to")
    update_node.add_argument(
        "--boot-image-configuration",
        help="CFS configuration whose image the nodes should boot",
    )
    update_node.add_argument(
        "--boot-image", dest="boot_image_id", help="IMS image id the nodes should boot"
    )
    update_node.add_argument(
        "--desired-configuration", help="CFS configuration to apply to the nodes"
    )
    update_node.add_argument(
        "--reason", default=DEFAULT_REASON, help="Reason recorded with power operations"
    )
    update_node.add_argument(
        "--assume-yes", action="store_true", help="Do not ask before rebooting nodes"
    )

    # apply node on|off|reset
    apply = verbs.add_parser("apply", help="Apply power operations")
    apply_targets = apply.add_subparsers(dest="target", required=True)
    apply_node = apply_targets.add_parser("node", help="Power nodes on, off or reset them")
    apply_node.add_argument(
        "command", choices=[command.value for command in PowerCommand], help="Power command"
    )
    apply_node.add_argument(
        "--nodes", required=True, type=parse_node_list, help="Comma separated list of xnames"
    )
    apply_node.add_argument("--hsm-group", help="HSM group the nodes must belong to")
    apply_node.add_argument("--reason", default="", help="Reason recorded with the operation")
    apply_node.add_argument("--force", action="store_true", help="Force the power off")
    apply_node.add_argument(
        "--assume-yes", action="store_true", help="Do not ask before powering nodes off"
    )

    # get configuration
    get = verbs.add_parser("get", help="Show resources")
    get_targets = get.add_subparsers(dest="target", required=True)
    get_configuration = get_targets.add_parser("configuration", help="List CFS configurations")
    get_configuration.add_argument("--name", help="Only configurations whose name contains this")
    get_configuration.add_argument(
        "--hsm-group",
        dest="hsm_groups",
        action="append",
        help="Only configurations related to this HSM group (repeatable)",
    )
    get_configuration.add_argument(
        "--limit", type=int, help="Only the N most recently updated configurations"
    )
    get_configuration.add_argument(
        "--output", choices=["table", "json"], default="table", help="Output format"
    )

    return parser


def _confirmation_provider(args: argparse.Namespace) -> ConfirmationProvider:
    if args.assume_yes:
        return AssumeYesProvider()
    return ConsoleConfirmationProvider(console=console)


def run_update_node(args: argparse.Namespace, client: CSMClient) -> int:
    request = NodeUpdateRequest(
        nodes=args.nodes,
        hsm_group=args.hsm_group,
        boot_image_configuration=args.boot_image_configuration,
        boot_image_id=args.boot_image_id,
        desired_configuration=args.desired_configuration,
        reason=args.reason,
    )
    result = NodeUpdateWorkflow(client, _confirmation_provider(args)).run(request)
    display_update_result(result)
    return EXIT_OK


def run_apply_node(args: argparse.Namespace, client: CSMClient) -> int:
    workflow = NodePowerWorkflow(client, _confirmation_provider(args))
    result = workflow.run(
        PowerCommand(args.command),
        args.nodes,
        hsm_group=args.hsm_group,
        reason=args.reason,
        force=args.force,
    )
    display_power_result(result)
    return EXIT_OK


def run_get_configuration(args: argparse.Namespace, client: CSMClient) -> int:
    configurations = client.cfs.get_configurations(
        name=args.name, limit=args.limit, hsm_groups=args.hsm_groups
    )
    display_configurations(configurations, output=args.output)
    return EXIT_OK


COMMANDS = {
    ("update", "node"): run_update_node,
    ("apply", "node"): run_apply_node,
    ("get", "configuration"): run_get_configuration,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)

    try:
        config = load_csm_config(args.config_file, site=args.site)
        client = CSMClient(config)
        logger.debug("Using site '%s' at %s", config.site, config.base_url)
        return COMMANDS[(args.verb, args.target)](args, client)

    except ConfirmationDeclined:
        display_warning("Cancelled by user. Nothing was changed.")
        return EXIT_OK
    except ValidationError as e:
        display_error(f"Validation Error: {e}")
        if e.nodes:
            display_node_list(e.nodes)
        return EXIT_ERROR
    except NotFoundError as e:
        display_error(f"Not Found: {e}")
        return EXIT_ERROR
    except PartialApplyError as e:
        display_error(f"Upstream Error: {e}")
        display_committed_effects(e.committed)
        return EXIT_ERROR
    except UpstreamError as e:
        display_error(f"Upstream Error: {e}")
        return EXIT_ERROR
    except CSMError as e:
        display_error(f"Error: {e}")
        return EXIT_ERROR
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user.[/yellow]")
        return EXIT_INTERRUPTED


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
