"""
Thin client for the Teamwork REST API.

Requests are authenticated with HTTP basic auth using the API key as the user
name. Every resource method returns descriptor models from ``twcli.models``.
"""

from typing import Any, Dict, List, Optional

import requests

from .logs import get_logger
from .models import Installation, Log, Person, Project, Task, Tasklist
from .parser import normalize_installation_url, parse_installation
from .recovery import APIError, LoginError

log = get_logger("api")

ACCOUNTS_URL = "https://authenticate.teamwork.com/accounts/search.json"
DEFAULT_TIMEOUT = 30


def _request(session: requests.Session, method: str, url: str, data: Optional[Dict[str, Any]] = None,
             timeout: int = DEFAULT_TIMEOUT) -> Dict[str, Any]:
    log.debug(f"{method} {url}")
    try:
        response = session.request(method, url, json=data, timeout=timeout)
    except requests.exceptions.ConnectionError as e:
        log.debug(f"Connection to {url} failed: {e}")
        raise APIError("Unable to connect to Teamwork. Please check your connection and try again.") from e
    except requests.exceptions.Timeout as e:
        raise APIError(f"Request to {url} timed out.") from e

    if response.status_code == 401:
        raise LoginError("Login failed: invalid credentials.", status=401)
    if response.status_code == 404:
        raise APIError(f"Not found: {url}", status=404)
    if response.status_code >= 400:
        raise APIError(f"Teamwork returned HTTP {response.status_code} for {method} {url}.",
                       status=response.status_code)

    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as e:
        raise APIError(f"Invalid JSON in response from {url}.", status=response.status_code) from e


class TeamworkAPI:
    """An authenticated Teamwork installation."""

    def __init__(self, auth: str, installation: str, session: Optional[requests.Session] = None,
                 timeout: int = DEFAULT_TIMEOUT):
        self.auth = auth
        self.installation = normalize_installation_url(installation)
        self.domain = f"{parse_installation(self.installation)}.teamwork.com"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (auth, "X")
        self.session.headers.update({"Accept": "application/json"})

    def request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.installation}/{path.lstrip('/')}"
        return _request(self.session, method, url, data, self.timeout)

    @classmethod
    def login(cls, email: str, password: str, installation: str,
              session: Optional[requests.Session] = None) -> 'TeamworkAPI':
        """Log in with an email and password and return an API keyed by the user's token."""
        installation = normalize_installation_url(installation)
        session = session or requests.Session()
        response = _request(session, "POST", f"{installation}/launchpad/v1/login.json",
                            {"username": email, "password": password})
        # The launchpad answers with the user's API token on success
        token = response.get("token") or response.get("apiKey")
        if not token:
            raise LoginError(f"Login failed: invalid credentials. ({email})")
        return cls(token, installation, session=session)

    @classmethod
    def login_with_auth(cls, auth: str, installation: str,
                        session: Optional[requests.Session] = None) -> 'TeamworkAPI':
        """Check an API key against the installation by fetching the profile."""
        api = cls(auth, installation, session=session)
        api.get_profile()
        return api

    @staticmethod
    def get_accounts(email: str, password: str, session: Optional[requests.Session] = None) -> List[Installation]:
        session = session or requests.Session()
        response = _request(session, "POST", ACCOUNTS_URL, {"email": email, "password": password})
        return [Installation.from_api(account) for account in response.get("accounts", [])]

    def get_profile(self) -> Person:
        return Person.from_api(self.request("GET", "/me.json")["person"])

    def get_projects(self) -> List[Project]:
        return [Project.from_api(project) for project in self.request("GET", "/projects.json").get("projects", [])]

    def get_project_by_id(self, project_id: int) -> Project:
        return Project.from_api(self.request("GET", f"/projects/{project_id}.json")["project"])

    def get_tasklists(self, project: Project) -> List[Tasklist]:
        response = self.request("GET", f"/projects/{project.id}/tasklists.json")
        return [Tasklist.from_api(tasklist, self.domain) for tasklist in response.get("tasklists", [])]

    def get_tasklist_by_id(self, tasklist_id: int) -> Tasklist:
        response = self.request("GET", f"/tasklists/{tasklist_id}.json")
        return Tasklist.from_api(response["todo-list"], self.domain)

    def get_tasks(self, tasklist: Tasklist) -> List[Task]:
        response = self.request("GET", f"/tasklists/{tasklist.id}/tasks.json")
        return [Task.from_api(task, self.domain) for task in response.get("todo-items", [])]

    def get_task_by_id(self, task_id: int) -> Task:
        return Task.from_api(self.request("GET", f"/tasks/{task_id}.json")["todo-item"], self.domain)

    def get_logs(self, task: Task) -> List[Log]:
        response = self.request("GET", f"/tasks/{task.id}/time_entries.json")
        return [Log.from_api(entry) for entry in response.get("time-entries", [])]

    def log(self, task: Task, person: Person, entry: Log) -> Log:
        """Log time to a task. Returns the log with its new id."""
        payload = {"time-entry": {
            "description": entry.description or "",
            "person-id": str(person.id),
            "date": entry.date.strftime("%Y%m%d"),
            "time": entry.date.strftime("%H:%M"),
            "hours": str(entry.hours),
            "minutes": str(entry.minutes),
            "isbillable": "1" if entry.is_billed else "0",
        }}
        response = self.request("POST", f"/tasks/{task.id}/time_entries.json", payload)
        log.info(f"Logged {entry.hours}h{entry.minutes}m to task #{task.id}")

        record = entry.to_json()
        record.update({"id": response.get("timeLogId"), "author": person, "task": task})
        return Log(record)
