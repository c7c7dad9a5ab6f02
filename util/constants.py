from pathlib import Path

# Settings file looked up in the working directory unless --config is given
DEFAULT_CONFIG_PATH = Path("rss_reader.yaml")
