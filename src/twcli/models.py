from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .descriptor import CALLABLE, REQUIRED, Model
from .parser import normalize_installation_url, parse_bool, parse_installation, parse_int, parse_timestamp
from .serializers import pydantic_serializer
from .store import TypeRegistry


class Company(Model):
    descriptor = {
        "id": (int, REQUIRED),
        "name": str,
    }

    def __str__(self):
        return self.name or f"Company #{self.id}"


class Person(Model):
    descriptor = {
        "id": (int, REQUIRED),
        "first_name": (str, REQUIRED),
        "last_name": (str, REQUIRED),
        "avatar": str,
        "username": str,
    }

    def __init__(self, data=None):
        super().__init__(data)
        self.name = f"{self.first_name} {self.last_name}"

    def initialed_name(self) -> str:
        """First name and last initial, e.g. "Adrian C."."""
        last = self.last_name.strip()
        return f"{self.first_name} {last[0].upper()}." if last else self.first_name

    @classmethod
    def from_api(cls, person: Dict[str, Any]) -> 'Person':
        return cls({
            "id": person["id"],
            "first_name": person.get("first-name", person.get("firstName")),
            "last_name": person.get("last-name", person.get("lastName")),
            "avatar": person.get("avatar-url"),
            "username": person.get("user-name"),
        })

    def __str__(self):
        return self.name


class Project(Model):
    descriptor = {
        "id": (int, REQUIRED),
        "name": str,
        "description": str,
        "company": Company,
    }

    def to_list_item(self) -> str:
        return f"[#{self.id}] {self.name}"

    @classmethod
    def from_api(cls, project: Dict[str, Any]) -> 'Project':
        return cls({
            "id": project["id"],
            "name": project.get("name"),
            "description": project.get("description"),
            "company": project.get("company"),
        })

    def __str__(self):
        return self.to_list_item()


class Tasklist(Model):
    descriptor = {
        "id": (parse_int, CALLABLE),
        "name": (str, CALLABLE),
        "description": str,
        "domain": str,
        "complete": (parse_bool, CALLABLE),
        "private": (parse_bool, CALLABLE),
        "uncompleted_count": (parse_int, CALLABLE),
        "project": Project,
    }

    def __init__(self, data=None):
        super().__init__(data)
        self.title = self.name

    def url(self) -> str:
        return f"https://{self.domain}/tasklists/{self.id}"

    def to_list_item(self) -> str:
        return f"[#{self.id}] {self.name}"

    @classmethod
    def from_api(cls, tasklist: Dict[str, Any], domain: Optional[str] = None) -> 'Tasklist':
        project = None
        if tasklist.get("projectId"):
            project = {"id": tasklist["projectId"], "name": tasklist.get("projectName")}
        return cls({
            "id": tasklist["id"],
            "name": tasklist.get("name"),
            "description": tasklist.get("description"),
            "domain": domain,
            "complete": tasklist.get("complete", False),
            "private": tasklist.get("private", False),
            "uncompleted_count": tasklist.get("uncompleted-count") or 0,
            "project": project,
        })

    def __str__(self):
        return self.to_list_item()


class Tag(Model):
    descriptor = {
        "id": (int, REQUIRED),
        "name": (str, REQUIRED),
        "color": str,
    }

    def __str__(self):
        return self.name


def _person_from(raw: Dict[str, Any], prefix: str) -> Optional[Dict[str, Any]]:
    person_id = parse_int(raw.get(f"{prefix}-id"))
    if person_id is None:
        return None
    return {
        "id": person_id,
        "first_name": raw.get(f"{prefix}-firstname", ""),
        "last_name": raw.get(f"{prefix}-lastname", ""),
    }


class Task(Model):
    descriptor = {
        "id": (int, REQUIRED),
        "title": (str, REQUIRED),
        "description": str,
        "status": str,
        "priority": str,
        "progress": (parse_int, CALLABLE),
        "tags": Tag,
        "parent": (parse_int, CALLABLE),
        "tasklist": Tasklist,
        "project": Project,
        "author": Person,
        "assigned": Person,
    }

    def progress_label(self) -> str:
        return f"{self.progress or 0}%"

    def url(self, domain: Optional[str] = None) -> Optional[str]:
        domain = domain or (self.tasklist.domain if self.tasklist else None)
        if not domain:
            return None
        return f"https://{domain}/tasks/{self.id}"

    def to_list_item(self) -> str:
        assigned = self.assigned.initialed_name() if self.assigned else "Anyone"
        return (f"[#{self.id}] {self.title} ({self.progress_label()})\n"
                f"  Assigned: {assigned}, Priority: {self.priority or 'none'}")

    @classmethod
    def from_api(cls, task: Dict[str, Any], domain: Optional[str] = None) -> 'Task':
        """Build a task from a ``todo-item`` record."""
        tasklist = None
        if parse_int(task.get("todo-list-id")) is not None:
            tasklist = {
                "id": task["todo-list-id"],
                "name": task.get("todo-list-name"),
                "domain": domain,
            }
        project = None
        if parse_int(task.get("project-id")) is not None:
            project = {"id": task["project-id"], "name": task.get("project-name")}

        return cls({
            "id": task["id"],
            "title": task.get("content") or task.get("title"),
            "description": task.get("description"),
            "status": task.get("status"),
            "priority": task.get("priority") or None,
            "progress": task.get("progress", 0),
            "tags": task.get("tags") or [],
            "parent": task.get("parentTaskId"),
            "tasklist": tasklist,
            "project": project,
            "author": _person_from(task, "creator"),
            "assigned": _person_from(task, "responsible-party"),
        })

    def __str__(self):
        return f"[#{self.id}] {self.title}"


class Log(Model):
    descriptor = {
        "id": (parse_int, CALLABLE),
        "minutes": (int, REQUIRED),
        "hours": (int, REQUIRED),
        "description": str,
        "date": (parse_timestamp, CALLABLE),
        "is_billed": (parse_bool, CALLABLE),
        "author": Person,
        "task": Task,
        "tasklist": Tasklist,
        "project": Project,
        "company": Company,
    }

    def __init__(self, data=None):
        super().__init__(data)
        self.duration = timedelta(hours=self.hours, minutes=self.minutes)

    @classmethod
    def create(cls, duration: timedelta, start: datetime, author: Person,
               description: Optional[str] = None) -> 'Log':
        total_minutes = int(duration.total_seconds() // 60)
        hours, minutes = divmod(total_minutes, 60)
        return cls({
            "hours": hours,
            "minutes": minutes,
            "date": start,
            "author": author,
            "description": description,
        })

    @classmethod
    def from_api(cls, entry: Dict[str, Any]) -> 'Log':
        """Build a log from a ``time-entries`` record."""
        author = None
        if parse_int(entry.get("person-id")) is not None:
            author = {
                "id": entry["person-id"],
                "first_name": entry.get("person-first-name", ""),
                "last_name": entry.get("person-last-name", ""),
            }
        return cls({
            "id": entry.get("id"),
            "minutes": entry.get("minutes", 0),
            "hours": entry.get("hours", 0),
            "description": entry.get("description"),
            "date": entry.get("date"),
            "is_billed": entry.get("isbillable", False),
            "author": author,
        })

    def humanized_duration(self) -> str:
        parts = []
        if self.hours:
            parts.append(f"{self.hours} hour{'s' if self.hours != 1 else ''}")
        if self.minutes or not parts:
            parts.append(f"{self.minutes} minute{'s' if self.minutes != 1 else ''}")
        return " ".join(parts)

    def to_list_item(self) -> str:
        author = self.author.initialed_name() if self.author else "Someone"
        when = self.date.strftime("%Y-%m-%d %H:%M") if self.date else "at an unknown time"
        item = f"{author} logged {self.humanized_duration()} on {when}."
        if self.description:
            item += "\n\n    " + self.description.replace("\n", "\n    ") + "\n"
        return item


class Installation(Model):
    descriptor = {
        "id": (parse_int, CALLABLE),
        "name": str,
        "domain": (str, REQUIRED),
        "url": (str, REQUIRED),
        "company": Company,
    }

    def to_list_item(self) -> str:
        return f"{self.name} ({self.domain})"

    @classmethod
    def from_api(cls, account: Dict[str, Any]) -> 'Installation':
        url = normalize_installation_url(account.get("installationUrl") or account["url"])
        return cls({
            "id": account.get("installationId"),
            "name": account.get("companyName") or account.get("name"),
            "domain": f"{parse_installation(url)}.teamwork.com",
            "url": url,
        })

    def __str__(self):
        return self.to_list_item()


class Credentials(BaseModel):
    """Auth key and installation of the logged in user."""

    auth: str = Field(description="API key used for HTTP basic auth")
    installation: str = Field(description="Installation URL, normalized to https://<name>.teamwork.com")

    @field_validator('installation')
    @classmethod
    def validate_installation(cls, v):
        return normalize_installation_url(v)


MODELS = {
    "Company": Company,
    "Person": Person,
    "Project": Project,
    "Tasklist": Tasklist,
    "Tag": Tag,
    "Task": Task,
    "Log": Log,
    "Installation": Installation,
}


def register_models(registry: TypeRegistry) -> TypeRegistry:
    registry.register(MODELS)
    registry.register("Credentials", pydantic_serializer(Credentials))
    return registry


def build_registry() -> TypeRegistry:
    """Registry with the built-in serializers and every domain model."""
    return register_models(TypeRegistry.with_builtins())
