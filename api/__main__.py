"""Command line interface for running the API server."""
import argparse
import asyncio
import logging
import signal
import uvicorn

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

server = None

def handle_shutdown(signum, frame):
    """Handle shutdown signals gracefully."""
    logger.info("Shutdown signal received. Cleaning up...")
    if server:
        server.stop()

class UvicornServer:
    """Wrapper for running uvicorn with proper lifecycle management."""

    def __init__(self, app_path: str = "api:app", host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
        self.config = uvicorn.Config(
            app_path,
            host=host,
            port=port,
            reload=reload,
            log_level="info"
        )
        self.server = uvicorn.Server(self.config)

    async def run(self):
        """Run the server in a way that can be stopped."""
        await self.server.serve()

    def stop(self):
        """Stop the server."""
        self.server.should_exit = True

async def main(host: str, port: int, reload: bool):
    """Run the API server until it is told to stop."""
    global server

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    server = UvicornServer(host=host, port=port, reload=reload)
    logger.info(f"Starting API server on {host}:{port}")
    await server.run()
    logger.info("API server stopped.")

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the marketplace API server")
    parser.add_argument('--host', default='0.0.0.0')
    parser.add_argument('--port', type=int, default=8000)
    parser.add_argument('--reload', action='store_true')
    args = parser.parse_args()

    asyncio.run(main(args.host, args.port, args.reload))
