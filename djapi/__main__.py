"""
__main__.py
-----------
Checks a connection file by opening (and closing) one connection:
    python -m djapi [path]
"""

import sys

from djapi.db.configuration import ConnectionConfig


def main(argv: list[str]) -> int:
    config = ConnectionConfig.get_instance(argv[0] if argv else None)
    connection = config.connect()
    if connection is None:
        print(f"❌ Unable to connect using {config.source_path}")
        return 1
    connection.close()
    print(f"✅ Connected to {config.url} with {config.driver}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
