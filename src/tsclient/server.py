"""Typed command wrappers over the tsserver protocol client."""

from __future__ import annotations

import logging
from typing import Any

from tsclient.protocol import commands
from tsclient.protocol.client import TSServerClient
from tsclient.protocol.events import ClientEventType
from tsclient.transport.stdio import StdioTransport
from tsclient.transport.types import TransportConfig

logger = logging.getLogger(__name__)

# Argument and body shapes belong to tsserver's protocol; they pass
# through this layer untouched.
Arguments = dict[str, Any]


class TypeScriptServer:
    """
    One method per tsserver command.

    Commands tsserver answers return the response body; the rest are
    sent fire-and-forget. Use ``client.on_event`` for project loading
    and diagnostic batch notifications.
    """

    def __init__(self, client: TSServerClient):
        self.client = client

    async def start(self) -> None:
        """Launch tsserver."""
        await self.client.start()

    async def stop(self) -> None:
        """Stop tsserver; pending requests fail with ConnectionClosed."""
        await self.client.stop()

    async def __aenter__(self) -> "TypeScriptServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def execute(self, command: str, args: Arguments | None = None) -> Any:
        """
        Send any tsserver command.

        Returns the response body, or None for commands tsserver does
        not answer.
        """
        if commands.expects_reply(command):
            return await self.client.request(command, args)
        await self.client.notify(command, args)
        return None

    # -- Files and projects ------------------------------------------------

    async def open_file(self, args: Arguments) -> None:
        await self.client.notify(commands.OPEN, args)

    async def close_file(self, args: Arguments) -> None:
        await self.client.notify(commands.CLOSE, args)

    async def reload_projects(self) -> None:
        await self.client.notify(commands.RELOAD_PROJECTS, None)

    async def update_file(self, args: Arguments) -> Any:
        """Reload a file's contents from ``tmpfile`` (or disk)."""
        return await self.client.request(commands.RELOAD, args)

    async def get_project_info(self, args: Arguments) -> Any:
        return await self.client.request(commands.PROJECT_INFO, args)

    # -- Navigation ----------------------------------------------------------

    async def quick_info(self, args: Arguments) -> Any:
        return await self.client.request(commands.QUICK_INFO, args)

    async def get_definition(self, args: Arguments) -> Any:
        return await self.client.request(commands.DEFINITION, args)

    async def get_type_definition(self, args: Arguments) -> Any:
        return await self.client.request(commands.TYPE_DEFINITION, args)

    async def get_references(self, args: Arguments) -> Any:
        return await self.client.request(commands.REFERENCES, args)

    async def get_signature_help(self, args: Arguments) -> Any:
        return await self.client.request(commands.SIGNATURE_HELP, args)

    async def rename(self, args: Arguments) -> Any:
        return await self.client.request(commands.RENAME, args)

    async def get_document_symbols(self, args: Arguments) -> Any:
        return await self.client.request(commands.NAVTREE, args)

    async def get_workspace_symbols(self, args: Arguments) -> Any:
        return await self.client.request(commands.NAVTO, args)

    # -- Completions -----------------------------------------------------------

    async def get_completions(self, args: Arguments) -> Any:
        return await self.client.request(commands.COMPLETION_INFO, args)

    async def get_completion_details(self, args: Arguments) -> Any:
        return await self.client.request(commands.COMPLETION_ENTRY_DETAILS, args)

    # -- Diagnostics -----------------------------------------------------------

    async def get_semantic_diagnostics(self, args: Arguments) -> Any:
        return await self.client.request(commands.SEMANTIC_DIAGNOSTICS_SYNC, args)

    async def get_syntactic_diagnostics(self, args: Arguments) -> Any:
        return await self.client.request(commands.SYNTACTIC_DIAGNOSTICS_SYNC, args)

    async def get_suggestion_diagnostics(self, args: Arguments) -> Any:
        return await self.client.request(commands.SUGGESTION_DIAGNOSTICS_SYNC, args)

    async def request_project_errors(self, args: Arguments) -> int:
        """
        Ask for diagnostics of a whole project.

        Results arrive later as one DIAGNOSTIC_BATCH event.

        Returns:
            Sequence number of the request, matching the batch's request_seq.
        """
        return await self.client.notify(commands.GETERR_FOR_PROJECT, args)

    async def get_project_errors(self, args: Arguments) -> list[Any]:
        """
        Ask for diagnostics of a whole project and wait for the batch.

        Raises:
            ConnectionClosed: If the session ends before the batch completes.
        """
        seq = self.client.send_no_reply(commands.GETERR_FOR_PROJECT, args)
        batch = self.client.wait_for_event(
            ClientEventType.DIAGNOSTIC_BATCH,
            lambda event: event.request_seq in (seq, None),
        )
        await self.client.drain()
        event = await batch
        return event.diagnostics

    # -- Code actions ----------------------------------------------------------

    async def get_code_fixes(self, args: Arguments) -> Any:
        return await self.client.request(commands.GET_CODE_FIXES, args)

    async def get_supported_code_fixes(self) -> Any:
        return await self.client.request(commands.GET_SUPPORTED_CODE_FIXES, None)

    async def get_combined_code_fix(self, args: Arguments) -> Any:
        return await self.client.request(commands.GET_COMBINED_CODE_FIX, args)

    async def get_applicable_refactors(self, args: Arguments) -> Any:
        return await self.client.request(commands.GET_APPLICABLE_REFACTORS, args)

    async def organize_imports(self, args: Arguments) -> Any:
        return await self.client.request(commands.ORGANIZE_IMPORTS, args)

    async def get_edits_for_file_rename(self, args: Arguments) -> Any:
        return await self.client.request(commands.GET_EDITS_FOR_FILE_RENAME, args)


def create_server(config: TransportConfig | None = None) -> TypeScriptServer:
    """
    Build a TypeScriptServer running tsserver over stdio.

    Args:
        config: Launch settings; defaults to ``tsserver`` on PATH.
    """
    transport = StdioTransport(config or TransportConfig())
    logger.debug(f"Creating tsserver client for {transport.config.argv}")
    return TypeScriptServer(TSServerClient(transport))
