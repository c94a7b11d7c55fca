"""
Command Line Interface for the Teamwork client.
"""

import functools
import sys
from datetime import datetime
from pathlib import Path

import click

from .api import TeamworkAPI
from .data import ConfigContext, delete_config, get_config_path
from .data.io import DATA_JSON, DATA_YAML, dump
from .logs import get_logger, setup_logging
from .models import Credentials, Installation, Log
from .parser import parse_duration, shorten_task_references, validate_email
from .recovery import APIError, CLIError, TWError
from .version import VERSION

log = get_logger("cli")

SELECTIONS = ("project", "tasklist", "task")
EDITOR_BOUNDARY = "# Everything below this line is ignored."
GIT_COMMIT_HELP = "# Please enter the commit"


def fail(reason, code: int = 1):
    """Print an error and exit with ``code``."""
    if isinstance(reason, Exception):
        log.debug("Command failed", exc_info=reason)
        reason = str(reason)
    click.echo(f"{click.style('error', fg='red')} {reason}", err=True)
    sys.exit(code)


def done(message: str):
    click.echo(click.style(f"✔ {message}", fg="green"))


def with_config(f):
    """Run a command inside a ConfigContext, saving on success and reporting TWErrors."""
    @click.pass_obj
    @functools.wraps(f)
    def wrapper(config_path, *args, **kwargs):
        try:
            with ConfigContext(config_path) as config:
                return f(config, *args, **kwargs)
        except TWError as e:
            fail(e)
    return wrapper


def get_api(config) -> TeamworkAPI:
    credentials = config.get("api")
    if credentials is None:
        raise CLIError("Not logged in. Please run `tw login`", show_help=False)
    return TeamworkAPI(credentials.auth, credentials.installation)


def _require_current(config, name: str):
    current = config.get(name)
    if current is None:
        raise CLIError(f"Current {name} is not set. Please use `tw {name}s --select <id>` to pick a {name}",
                       show_help=False)
    return current


def _pick(items, item_id: int, name: str):
    for item in items:
        if item.id == item_id:
            return item
    raise CLIError(f"No {name} with id #{item_id}", show_help=False)


def _resolve_task(api, config, task_id, current):
    if task_id is not None and current:
        raise CLIError("Clashing targets. Please only specify a task with -t or the current task with -T")
    if task_id is not None:
        return api.get_task_by_id(task_id)
    return _require_current(config, "task")


def expand_commit_message(api, installation, message: str) -> str:
    """Shorten task references in a commit message and add an index of the tasks."""
    message, task_ids = shorten_task_references(message)
    if not task_ids:
        return message

    where = installation if installation is not None else api.domain
    tasks = []
    for task_id in task_ids:
        try:
            tasks.append(api.get_task_by_id(task_id))
        except APIError as e:
            if e.status != 404:
                raise
            raise CLIError(f"Task #{task_id} not found in {where}", show_help=False) from e

    domain = installation.domain if installation is not None else api.domain
    index = "\n" + "\n\n".join(f"{task}\n{task.url(domain)}" for task in tasks)
    if GIT_COMMIT_HELP in message:
        return message.replace(GIT_COMMIT_HELP, f"{index}\n\n{GIT_COMMIT_HELP}", 1)
    return message + index


def _edit_message(task) -> str:
    template = f"\n\n{EDITOR_BOUNDARY}\n# Logging time to {task}\n"
    edited = click.edit(template)
    if edited is None:
        raise CLIError("Editor closed without saving. Aborting log", show_help=False)
    message = edited.split(EDITOR_BOUNDARY, 1)[0]
    lines = [line for line in message.splitlines() if not line.startswith("#")]
    return "\n".join(lines).strip()


@click.group()
@click.version_option(version=VERSION, prog_name="tw")
@click.option('-v', '--verbose', is_flag=True, help='Show debug output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Config file to use instead of the default')
@click.pass_context
def main(ctx, verbose, config_path):
    """
    tw - Teamwork from the command line.

    Select a project, tasklist and task once and log time to it from anywhere.
    """
    setup_logging(verbose)
    ctx.obj = config_path or get_config_path()


@main.command()
@click.option('-i', '--installation', help='Installation URL, e.g. https://example.teamwork.com')
@click.option('-e', '--email', help='Login email')
@click.option('-a', '--auth', help='Log in with an API key instead of email and password')
@with_config
def login(config, installation, email, auth):
    """Login to Teamwork."""
    if auth:
        if not installation:
            installation = click.prompt("Installation URL")
        api = TeamworkAPI.login_with_auth(auth, installation)
        chosen = None
    else:
        email = validate_email(email or click.prompt("Email"))
        password = click.prompt("Password", hide_input=True)

        chosen = None
        if not installation:
            accounts = TeamworkAPI.get_accounts(email, password)
            if not accounts:
                raise CLIError(f"No Teamwork installations found for {email}", show_help=False)
            if len(accounts) == 1:
                chosen = accounts[0]
            else:
                for index, account in enumerate(accounts, 1):
                    click.echo(f"  {index}) {account.to_list_item()}")
                choice = click.prompt("Installation", type=click.IntRange(1, len(accounts)))
                chosen = accounts[choice - 1]
            installation = chosen.url

        api = TeamworkAPI.login(email, password, installation)

    if chosen is None:
        chosen = Installation({"domain": api.domain, "url": api.installation, "name": api.domain})

    user = api.get_profile()
    config.set({
        "api": Credentials(auth=api.auth, installation=api.installation),
        "installation": chosen,
        "user": user,
    })
    done(f"Logged in as {user.name} to {chosen.to_list_item()}.")


@main.command()
@click.pass_obj
def logout(config_path):
    """Delete the config file, forgetting credentials and selections."""
    try:
        if delete_config(config_path):
            done("Logged out.")
        else:
            click.echo("Nothing to do, not logged in.")
    except TWError as e:
        fail(e)


@main.command()
@with_config
def status(config):
    """Show the current Teamwork status."""
    installation = config.get("installation")
    if config.get("api") is None or installation is None:
        click.echo("Not logged in. Run `tw login` to get started.")
        return

    user = config.get("user")
    click.echo(f"Installation: {installation.to_list_item()}")
    if user is not None:
        click.echo(f"User:         {user.name}")
    for name in SELECTIONS:
        current = config.get(name)
        click.echo(f"{name.capitalize() + ':':<13} {current if current is not None else '-'}")

    last_log = config.get("last_log")
    if last_log is not None:
        click.echo("")
        click.echo(f"Last log: {last_log.humanized_duration()} to {last_log.task}")


@main.command()
@click.option('--select', 'select_id', type=int, help='Make the project with this id current')
@with_config
def projects(config, select_id):
    """View and select a project."""
    api = get_api(config)
    if select_id is not None:
        project = api.get_project_by_id(select_id)
        config.set("project", project)
        config.delete("tasklist")
        config.delete("task")
        done(f"Current project set to {project.to_list_item()}.")
        return

    current = config.get("project")
    for project in api.get_projects():
        marker = "*" if current is not None and current.id == project.id else " "
        click.echo(f"{marker} {project.to_list_item()}")


@main.command()
@click.option('--select', 'select_id', type=int, help='Make the tasklist with this id current')
@with_config
def tasklists(config, select_id):
    """View and select a tasklist from the current project."""
    api = get_api(config)
    project = _require_current(config, "project")
    items = api.get_tasklists(project)

    if select_id is not None:
        tasklist = _pick(items, select_id, "tasklist")
        config.set("tasklist", tasklist)
        config.delete("task")
        done(f"Current tasklist set to {tasklist.to_list_item()}.")
        return

    current = config.get("tasklist")
    for tasklist in items:
        marker = "*" if current is not None and current.id == tasklist.id else " "
        click.echo(f"{marker} {tasklist.to_list_item()} ({tasklist.uncompleted_count} open)")


@main.command()
@click.option('--select', 'select_id', type=int, help='Make the task with this id current')
@with_config
def tasks(config, select_id):
    """View and select a task from the current tasklist."""
    api = get_api(config)
    if select_id is not None:
        task = api.get_task_by_id(select_id)
        config.set("task", task)
        done(f"Current task set to {task}.")
        return

    tasklist = _require_current(config, "tasklist")
    items = api.get_tasks(tasklist)
    if not items:
        click.echo(f"No open tasks in {tasklist.to_list_item()}.")
    for task in items:
        click.echo(task.to_list_item())


@main.command(name="log")
@click.argument('duration')
@click.option('-t', '--task', 'task_id', type=int, help='Log to the task with this id')
@click.option('-T', '--current-task', 'current', is_flag=True, help='Log to the current task')
@click.option('-m', '--message', help='Log message; opens $EDITOR when omitted')
@click.option('--billable', is_flag=True, help='Mark the time as billable')
@with_config
def log_time(config, duration, task_id, current, message, billable):
    """Log DURATION (e.g. 1h30m) to a task."""
    duration = parse_duration(duration)
    api = get_api(config)
    task = _resolve_task(api, config, task_id, current)
    user = config.get("user") or api.get_profile()

    if message is None:
        message = _edit_message(task)

    entry = Log.create(duration, datetime.now().astimezone() - duration, user, message)
    entry.is_billed = billable
    logged = api.log(task, user, entry)
    config.set("last_log", logged)
    done(f"Logged {logged.humanized_duration()} to {task}.")


@main.command()
@click.option('-t', '--task', 'task_id', type=int, help='Show logs of the task with this id')
@click.option('-T', '--current-task', 'current', is_flag=True, help='Show logs of the current task')
@with_config
def logs(config, task_id, current):
    """Get the time logs for a task."""
    api = get_api(config)
    task = _resolve_task(api, config, task_id, current)
    entries = api.get_logs(task)
    if not entries:
        click.echo(f"No time logged to {task}.")
    for entry in entries:
        click.echo(entry.to_list_item())


@main.command()
@with_config
def clear(config):
    """Clear the current project, tasklist and task."""
    for name in SELECTIONS:
        config.delete(name)
    done("Cleared the current selection.")


@main.command(name="config")
@click.option('--yaml', 'as_yaml', is_flag=True, help='Print as YAML instead of JSON')
@with_config
def show_config(config, as_yaml):
    """Print the stored config document."""
    click.echo(dump(DATA_YAML if as_yaml else DATA_JSON, config.to_json()))


@main.command(name="commit-msg")
@click.argument('message_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@with_config
def commit_msg(config, message_file):
    """Expand task references in a git commit message file.

    Use it from a commit-msg or prepare-commit-msg hook: `tw commit-msg "$1"`.
    """
    message = message_file.read_text(encoding='utf-8')
    _, task_ids = shorten_task_references(message)
    if not task_ids:
        return

    expanded = expand_commit_message(get_api(config), config.get("installation"), message)
    message_file.write_text(expanded, encoding='utf-8')
    log.debug(f"Expanded {len(task_ids)} task reference(s) in {message_file}")


if __name__ == "__main__":
    main()
