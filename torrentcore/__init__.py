"""BitTorrent building blocks: block and piece pickers, bencoding, DHT messages, HTTP and non-blocking IO helpers."""

__version__ = "0.1.0"