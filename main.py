import os
import sys

from dotenv import load_dotenv

from ladder_bot.mexc_api import DEFAULT_BASE_URL
from ladder_bot.runner import run_bot


def main() -> None:
    load_dotenv()
    api_key = os.getenv("API_KEY", "")
    api_secret = os.getenv("API_SECRET", "")
    base_url = os.getenv("MEXC_BASE_URL", DEFAULT_BASE_URL)
    config_path = os.getenv("LADDER_CONFIG", "config.json")
    sys.exit(run_bot(config_path, api_key=api_key, api_secret=api_secret, base_url=base_url))


if __name__ == "__main__":
    main()
