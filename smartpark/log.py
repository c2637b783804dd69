"""Logging setup shared by the API and scripts."""
import logging

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    global _configured
    lvl = getattr(logging, str(level).upper(), logging.INFO)
    if _configured:
        logging.getLogger().setLevel(lvl)
        return
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )
    _configured = True
