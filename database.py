"""
MongoDB persistence for the catalog (optional).

When DATABASE_URL and DATABASE_NAME are both set the catalog is written
through to MongoDB after every change and reloaded on start-up. Otherwise the
catalog lives in memory only.

Collections:
- project: one document per project, keyed by the numeric project id
- skill: one document per skill, in display order
- catalog_state: a single document holding the learning list, tag index and
  counters
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pymongo import MongoClient
from pymongo.database import Database

logger = logging.getLogger("portfolio.database")

STATE_ID = "catalog"


def connect(database_url: Optional[str], database_name: Optional[str]) -> Optional[Database]:
    if not database_url or not database_name:
        return None
    client = MongoClient(database_url, serverSelectionTimeoutMS=5000)
    logger.info("Using MongoDB database %s", database_name)
    return client[database_name]


def get_documents(db: Database, collection_name: str, filter_dict: Optional[dict] = None, sort: Optional[str] = None) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort, 1)
    items = list(cursor)
    for it in items:
        it.pop("_id", None)
    return items


class MongoCatalogBackend:
    def __init__(self, db: Database):
        self.db = db

    def load(self) -> Optional[dict]:
        state = self.db["catalog_state"].find_one({"_id": STATE_ID})
        if not state:
            return None
        projects = get_documents(self.db, "project", sort="id")
        skills = get_documents(self.db, "skill", sort="position")
        for skill in skills:
            skill.pop("position", None)
        return {
            "projects": projects,
            "skills": skills,
            "currently_learning": state.get("currently_learning", []),
            "technology_tags": state.get("technology_tags", []),
            "next_id": state.get("next_id", 1),
            "github_repos": state.get("github_repos", 0),
        }

    def save(self, state: dict) -> None:
        self.db["project"].delete_many({})
        if state["projects"]:
            self.db["project"].insert_many([dict(p) for p in state["projects"]])

        self.db["skill"].delete_many({})
        if state["skills"]:
            self.db["skill"].insert_many([dict(s, position=i) for i, s in enumerate(state["skills"])])

        self.db["catalog_state"].replace_one(
            {"_id": STATE_ID},
            {
                "_id": STATE_ID,
                "currently_learning": state["currently_learning"],
                "technology_tags": state["technology_tags"],
                "next_id": state["next_id"],
                "github_repos": state["github_repos"],
                "updated_at": datetime.now(timezone.utc),
            },
            upsert=True,
        )

    def collections(self) -> List[str]:
        return self.db.list_collection_names()

    def close(self) -> None:
        self.db.client.close()
