"""Example: drive the service layer directly, without Flask.

Controllers are thin; the workflow lives in the services, so a script can
log in and list open bugs with nothing but the container.
"""

import importlib
import sys

from config import get_settings_module

from src.bug_tracker.bug_tracker.container import build_container


def main(email: str, password: str):
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    result = container.auth_service.login(email, password)
    if result.two_factor_required:
        print(result.message)
        return
    print("Signed in as", result.user.name)
    for bug in container.bug_service.list_bugs(status="open"):
        print(f"#{bug.bug_id} [{bug.priority.value}] {bug.title}")


if __name__ == "__main__":
    main(*(sys.argv[1:3] or ["admin@bugtracker.local", "admin123"]))
