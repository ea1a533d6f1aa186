"""Export command: add deployed resources to the delivery config."""

import asyncio
import logging
import sys

from spinmd.commands.options import CLI_ERRORS, fail, make_client, make_processor
from spinmd.exporter import run_export

logger = logging.getLogger(__name__)


def format_summary(app_name, delivery_config, result) -> list[str]:
    """Indented outline of the saved delivery config, marking what the export changed."""
    lines = [app_name, "  artifacts"]
    for artifact in delivery_config.artifacts:
        added = any(a.equivalent_to(artifact) for a in result.added_artifacts)
        lines.append(f"    {artifact.ref_name}{' (added)' if added else ''}")

    lines.append("  environments")
    for env in delivery_config.environments:
        lines.append(f"    {env.name}")
        for resource_type in sorted({r.resource_type for r in env.resources}):
            lines.append(f"      {resource_type}s")
            for resource in env.resources:
                if resource.resource_type != resource_type:
                    continue
                account = resource.account or env.locations.account
                line = f"        {resource.name} [{account}]"
                for identity, added in result.modified.items():
                    if resource.match(identity):
                        line += " (added)" if added else " (updated)"
                        break
                lines.append(line)
    return lines


def handle_export(args):
    """Handle the export command."""
    asyncio.run(_handle_export(args))


async def _handle_export(args):
    processor = make_processor(args, app_name=args.app, service_account=args.service_account)
    try:
        result = await run_export(
            make_client(args),
            processor,
            args.app,
            service_account=args.service_account,
            env_name=args.env,
            only_account=args.account,
            clusters=args.cluster,
            export_all=args.all,
        )
    except CLI_ERRORS as e:
        fail(f"Failed to export resources for {args.app}", e)

    if result.modified or result.added_artifacts:
        logger.info("Export Summary:")
        for line in format_summary(args.app, processor.delivery_config, result):
            logger.info(line)

    if not result.ok:
        logger.error("ERROR: Some errors occurred during export:")
        for error in result.errors:
            logger.error(f"ERROR: {error}")
        sys.exit(1)


def register_export_command(subparsers):
    """Register the export subcommand."""
    parser = subparsers.add_parser("export", help="Export deployed resources into the delivery config")
    parser.add_argument("--app", required=True, help="Spinnaker application name")
    parser.add_argument("--service-account", required=True, help="Spinnaker service account")
    parser.add_argument(
        "--all",
        action="store_true",
        help="Export every resource found (default: only resources not yet in the delivery config)",
    )
    parser.add_argument(
        "--env",
        default="",
        help="Environment to export resources into (default: the environment already holding each resource)",
    )
    parser.add_argument(
        "--cluster",
        action="append",
        default=None,
        help="Only export the named cluster (repeatable)",
    )
    parser.add_argument("--account", default="", help="Only export resources in this account")
    parser.set_defaults(func=handle_export)
