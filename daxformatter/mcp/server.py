import logging
import sys
from typing import BinaryIO, Iterator, Optional

from daxformatter.core.config import DaxFormatterConfig
from daxformatter.sdk.client import DaxFormatterClient

from .envelope import EnvelopeDecodeError, RpcResponse, decode_request, encode_response, error_response
from .handlers import GatewayContext, dispatch_message
from .protocol import INTERNAL_ERROR, PARSE_ERROR
from .utils import public_error_message

logger = logging.getLogger("DaxFormatter.mcp.server")


def read_lines(stream: BinaryIO) -> Iterator[str]:
    """
    Yield inbound lines from a binary stream, one JSON document per line.

    Invalid UTF-8 is replaced rather than rejected so the line still reaches
    the decoder and gets a parse-error reply. Blank lines are skipped.
    """
    while True:
        raw = stream.readline()
        if not raw:
            return
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        if not line.strip():
            logger.debug("Skipping blank transport line")
            continue
        yield line


class McpServer:
    """
    Handles JSON-RPC communication over stdio, one request at a time.

    Each line is decoded, routed and answered before the next line is read,
    so responses leave in request order.
    """
    def __init__(self, context: GatewayContext, output: Optional[BinaryIO] = None):
        self.context = context
        self.output = output if output is not None else sys.stdout.buffer
        self.transport_closed = False

    def send(self, response: RpcResponse) -> None:
        """Serialize and write one response line."""
        if self.transport_closed:
            return
        serialized = encode_response(response)
        try:
            self.output.write((serialized + "\n").encode("utf-8", "backslashreplace"))
            self.output.flush()
        except (BrokenPipeError, OSError) as exc:
            self.transport_closed = True
            logger.warning("MCP stdio transport closed while sending: %s", exc)
            return
        logger.debug("Sent: %s", serialized)

    def handle_line(self, line: str) -> Optional[RpcResponse]:
        """Produce the response owed for one inbound line, if any."""
        logger.debug("Received: %s", line)
        try:
            request = decode_request(line)
        except EnvelopeDecodeError as exc:
            logger.warning("Parse error: %s", exc)
            return error_response(None, PARSE_ERROR, f"Parse error: {exc}")

        try:
            return dispatch_message(request, self.context)
        except Exception as exc:
            logger.exception("Unexpected error during RPC dispatch of %s", request.method)
            if request.is_notification:
                return None
            return error_response(request.id, INTERNAL_ERROR, f"Internal error: {public_error_message(exc)}")

    def serve(self, stream: Optional[BinaryIO] = None) -> None:
        """Run until end of input or until stdout goes away."""
        source = stream if stream is not None else sys.stdin.buffer
        logger.info("DAX Formatter MCP gateway listening on stdio")
        for line in read_lines(source):
            response = self.handle_line(line)
            if response is not None:
                self.send(response)
            if self.transport_closed:
                logger.info("Output closed; stopping")
                return
        logger.info("End of input; shutting down")


def run(config: DaxFormatterConfig, stream: Optional[BinaryIO] = None, output: Optional[BinaryIO] = None) -> None:
    """Build the formatter client and serve stdio until input ends."""
    with DaxFormatterClient(
        base_url=config.service.base_url,
        timeout=config.service.timeout,
        max_retries=config.service.max_retries,
    ) as client:
        server = McpServer(GatewayContext(client, config), output=output)
        server.serve(stream)
