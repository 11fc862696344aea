#!/usr/bin/env python
"""
Update project sub-tickets from Jira.
Run with: python scripts/sync_subtickets.py [PROJECT_ID] [-v]
Without a project id all projects with a ticket system are synced.
Requires DATABASE_URL and ENCRYPTION_KEY in .env.
"""

import argparse
import asyncio
import os
import sys

# Add package to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from timetracker.config import settings
from timetracker.connectors.factory import JiraConnectorFactory
from timetracker.database import SessionLocal
from timetracker.exceptions import PreconditionError, TimetrackerError
from timetracker.logging_config import configure_logging
from timetracker.repositories import TimetrackerRepository
from timetracker.services.subticket_sync import SubticketSyncService


async def sync_subtickets(project_id, verbose):
    db = SessionLocal()
    try:
        repository = TimetrackerRepository(db)
        service = SubticketSyncService(repository, JiraConnectorFactory(repository))

        if project_id is not None:
            project = repository.load_project(project_id)
            if project is None:
                print("Project does not exist")
                return 1
            results = {project.id: await service.sync_project_subtickets(project)}
        else:
            results = await service.sync_all_project_subtickets()

        print(f"Synced {len(results)} projects with ticket system")
        for synced_id, subtickets in results.items():
            print(f" {synced_id}: {len(subtickets)} subtickets found")
            if verbose and subtickets:
                print(f"  {','.join(subtickets)}")
        return 0

    except PreconditionError as e:
        print(f"Error ({e.code}): {e.message}")
        return 1
    except TimetrackerError as e:
        print(f"Error syncing subtickets: {e.message}")
        return 1
    finally:
        db.close()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Update project subtickets from Jira")
    parser.add_argument("project", nargs="?", type=int, help="Single project ID to update")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print the sub-ticket keys")
    args = parser.parse_args()

    configure_logging(settings.log_level)
    sys.exit(asyncio.run(sync_subtickets(args.project, args.verbose)))
