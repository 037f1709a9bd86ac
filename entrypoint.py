import uvicorn

from constants import HOST, LOG_FILE, LOG_LEVEL, PORT, SCHEME, SSL_CERTFILE, SSL_KEYFILE
from logging_config import setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from app import app
from logging_config import get_logger
from network import get_local_ips

logger = get_logger(__name__)


def print_banner(port: int):
    urls = [("Local", f"{SCHEME}://localhost:{port}")]
    urls += [("Network", f"{SCHEME}://{ip}:{port}") for ip in get_local_ips()]

    logger.info("tiny-stream signaling hub is running")
    for label, url in urls:
        logger.info(f"  {label + ':':<9} {url}")
    logger.info("Open the Network URL on any device in your home network.")
    if SCHEME == "https":
        logger.info("First visit: accept the certificate warning if it is self-signed.")
    else:
        logger.warning("TLS is not configured; browsers only allow camera access over https or on localhost.")


if __name__ == "__main__":
    logger.info(f"Starting signaling hub on {HOST}:{PORT}")
    print_banner(PORT)
    uvicorn.run(
        app,
        host=HOST,
        port=PORT,
        ssl_certfile=SSL_CERTFILE if SCHEME == "https" else None,
        ssl_keyfile=SSL_KEYFILE if SCHEME == "https" else None,
        log_config=None,
    )
