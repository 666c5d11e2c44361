"""Main entry point for vaultmcp MCP server."""

import argparse
import asyncio
import json
import logging
import sys

from fastmcp import FastMCP

from vault_mcp.config import Config
from vault_mcp.errors import VaultError
from vault_mcp.service import VaultService
from vault_mcp.tools import NO_ANSWER, register_tools

logger = logging.getLogger(__name__)


def create_server(config: Config) -> tuple[FastMCP, VaultService]:
    """Create and configure the MCP server with all components.

    Args:
        config: Configuration instance with all settings.
    """
    mcp = FastMCP(
        name="vaultMCP",
        instructions=(
            "vaultMCP provides semantic search over a vault of markdown notes. "
            "Use the search tool to find relevant passages, the answer tool to get "
            "an answer generated from the notes, and reindex after notes change."
        ),
    )

    service = VaultService.from_config(config)

    if not service.configured:
        logger.warning("Providers not configured: %s", service.configuration_error)

    logger.info("Registering tools...")
    register_tools(mcp, service)

    logger.info("Server configured successfully")
    return mcp, service


async def run_once(config: Config, args: argparse.Namespace) -> int:
    """Run a single reindex, search or answer and print the result as JSON."""
    service = VaultService.from_config(config)
    try:
        await service.store.initialize()
        if not service.configured:
            logger.error("Cannot run: %s", service.configuration_error)
            return 2

        if args.reindex:
            summary = await service.reindex()
            output: object = summary.as_dict()
        elif args.search:
            results = await service.search(args.search, args.limit)
            output = [
                {
                    "document_path": r.document_path,
                    "chunk_order": r.chunk.chunk_order,
                    "similarity": round(r.similarity, 4),
                    "content": r.chunk.content,
                }
                for r in results
            ]
        else:
            answer = await service.answer(args.ask)
            output = {"answer": answer if answer is not None else NO_ANSWER}

        print(json.dumps(output, indent=2, ensure_ascii=False))
        return 0
    except VaultError as e:
        logger.error("%s", e)
        return 1
    finally:
        await service.aclose()


async def serve(mcp: FastMCP, service: VaultService, port: int) -> None:
    """Serve MCP over SSE; the startup reindex runs alongside the server."""
    await service.initialize()
    try:
        await mcp.run_async(transport="sse", host="0.0.0.0", port=port)
    finally:
        await service.aclose()


def main() -> None:
    """Main function - starts the MCP server or runs a one-off command."""
    # Configure logging here to avoid side effects on import
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="vaultMCP - semantic search and answers over a markdown vault"
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--reindex",
        action="store_true",
        help="Sync the index with the vault and exit",
    )
    action.add_argument("--search", metavar="QUERY", help="Run a semantic search and exit")
    action.add_argument("--ask", metavar="QUESTION", help="Generate an answer and exit")
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of search results",
    )
    args = parser.parse_args()

    config = Config.from_env()

    # Print startup banner
    logger.info("=" * 50)
    logger.info("vaultMCP starting...")
    logger.info("  VAULT_ROOT: %s", config.vault_root)
    logger.info("  VAULT_PORT: %s", config.vault_port)
    logger.info("  VAULT_DB:   %s", config.vault_db)
    logger.info("  PROVIDERS:  %s", "configured" if config.providers.configured else "missing API key")
    logger.info("  EXCLUDED:   %s", ", ".join(config.excluded_dirs) or "-")
    logger.info("  PUBLIC:     %s", ", ".join(config.public_dirs) or "-")
    logger.info("=" * 50)

    if args.reindex or args.search or args.ask:
        sys.exit(asyncio.run(run_once(config, args)))

    try:
        mcp, service = create_server(config)
        logger.info("Starting MCP server on port %s...", config.vault_port)
        asyncio.run(serve(mcp, service, config.vault_port))
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)
    except Exception:
        logger.exception("Server error")
        sys.exit(1)


if __name__ == "__main__":
    main()
