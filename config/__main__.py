"""Command line interface for checking configuration loading"""
from . import settings_conf
from pathlib import Path

def main():
    """Display loaded configuration"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings_conf.items():
        if key == 'bridge_token' and value:
            value = '********'
        print(f"{key}: {value}")

    # Save example configuration file
    examples_dir = Path("examples")
    examples_dir.mkdir(exist_ok=True)

    with open(examples_dir / "settings.conf.example", "w", encoding="utf-8") as f:
        f.write("""[DEFAULT]
# Ledger location: postgresql://... for CockroachDB/PostgreSQL, memory:// for a throwaway in-process ledger
db_url = postgresql://root@localhost:26257/chatmarket?sslmode=disable
# Directory for uploaded trade item images
blob_dir = ./trade_images
# HTTP chat bridge that delivers messages to and from the messaging client
bridge_url = http://127.0.0.1:8090
bridge_token =
bridge_timeout = 10
# Image sent to a venue when a trade starts
contact_card_path = ./contact_card.jpg
code_digits = 12
code_max_attempts = 5
api_host = 0.0.0.0
api_port = 8000
log_level = INFO
""")
    print(f"\nWrote {examples_dir / 'settings.conf.example'}")

if __name__ == "__main__":
    main()
