# scripts/hash_password.py
# Prints a bcrypt hash usable as ADMIN_PASSWORD in settings.json,
# or writes it straight into the settings document with --apply.
import argparse
import getpass

from visa_tracker.core.config import settings
from visa_tracker.core.security import hash_password
from visa_tracker.db.store import JsonFileStore
from visa_tracker.services.settings_service import SettingsRegistry


def main():
    parser = argparse.ArgumentParser(description="Hash the Visa Tracker admin password")
    parser.add_argument("--apply", action="store_true", help="store the hash in settings.json")
    args = parser.parse_args()

    password = getpass.getpass("New admin password: ")
    if len(password) < 6:
        raise SystemExit("Password must be at least 6 characters")
    if password != getpass.getpass("Confirm: "):
        raise SystemExit("Passwords do not match")

    hashed = hash_password(password)
    if not args.apply:
        print(hashed)
        return

    registry = SettingsRegistry(JsonFileStore(settings.data_path))
    doc = registry.get()
    doc["ADMIN_PASSWORD"] = hashed
    registry.set(doc)
    print("UPDATED", registry.store.path_for("settings"))


if __name__ == "__main__":
    main()
