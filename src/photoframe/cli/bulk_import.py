import json
import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor

from dotenv import load_dotenv
from invoke import Collection, Context, Program, task
from invoke.exceptions import Exit

from photoframe import __version__
from photoframe.config import get_env
from photoframe.error_handling import OperationCancelledError, PhotoFrameError
from photoframe.logging_config import configure_structured_logging, get_logger
from photoframe.session import PhotoFrameSession, create_session

logger = get_logger(__name__)

DEFAULT_USER_ID = "cli"


def _load_environment(env_file: str) -> None:
    # LOG_LEVEL and ENVIRONMENT may come from the env file
    env_found = os.path.exists(env_file)
    if env_found:
        load_dotenv(dotenv_path=env_file)
    configure_structured_logging()

    if env_found:
        logger.info("environment_loaded", env_file=env_file)
    else:
        logger.warning("environment_file_not_found", env_file=env_file)


def _build_session(root_folder: str | None = None, authenticate: bool = True) -> PhotoFrameSession:
    """
    Create a session for the operator.

    The refresh credential comes from PHOTOFRAME_REFRESH_TOKEN; the first API
    call exchanges it for a bearer token.
    """
    user_id = get_env("PHOTOFRAME_USER_ID", DEFAULT_USER_ID)
    session = create_session(user_id, root_folder=root_folder)

    if authenticate:
        refresh_token = get_env("PHOTOFRAME_REFRESH_TOKEN")
        if not refresh_token:
            raise Exit("PHOTOFRAME_REFRESH_TOKEN is not set", code=1)
        session.auth.set_tokens(None, refresh_token, profile_id=user_id)

    return session


def _select_folders(session: PhotoFrameSession, names: str, all_folders: bool) -> list:
    available = session.scanner.list_folders()
    if all_folders:
        return available

    wanted = [name.strip() for name in names.split(",") if name.strip()]
    by_name = {folder.name: folder for folder in available}
    missing = [name for name in wanted if name not in by_name]
    if missing:
        raise Exit(f"Unknown folder(s): {', '.join(missing)}", code=1)
    return [by_name[name] for name in wanted]


@task
def list_folders(c: Context, root_folder: str = "", env_file: str = ".env"):
    """
    List the folders that can be imported.

    Args:
        c (Context): Invoke context.
        root_folder (str): Import root. Defaults to PHOTOFRAME_ROOT_FOLDER.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    _load_environment(env_file)
    session = _build_session(root_folder or None, authenticate=False)

    try:
        folders = session.scanner.list_folders()
    except PhotoFrameError as e:
        raise Exit(e.user_message, code=1) from e

    for folder in folders:
        print(f"{folder.name}\t{folder.item_count}\t{folder.full_path}")
    print(f"\n{len(folders)} folder(s) in {session.scanner.root_folder}")


@task
def import_folders(c: Context, folders: str = "", all_folders: bool = False, root_folder: str = "", env_file: str = ".env"):
    """
    Import local folders into Google Photos albums.

    Args:
        c (Context): Invoke context.
        folders (str): Comma separated folder names below the import root.
        all_folders (bool): Import every folder below the import root.
        root_folder (str): Import root. Defaults to PHOTOFRAME_ROOT_FOLDER.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    _load_environment(env_file)
    session = _build_session(root_folder or None)
    selection = _select_folders(session, folders, all_folders)

    logger.info("starting_import", folders=[folder.name for folder in selection])
    cancel_event = threading.Event()

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="import") as pool:
        future = pool.submit(session.importer.import_folders, session.user_id, selection, cancel_event)
        try:
            try:
                report = future.result()
            except KeyboardInterrupt:
                print("\nCancelling after the current batch...")
                cancel_event.set()
                report = future.result()
        except OperationCancelledError as e:
            raise Exit("Import cancelled", code=130) from e
        except PhotoFrameError as e:
            raise Exit(e.user_message, code=1) from e

    for result in report.folders_result:
        line = f"{result.folder_name}: {result.items} item(s)"
        if result.error:
            line += f" (error: {result.error})"
        print(line)
    print(f"\nImport complete. Items: {report.total_items}, dead letter: {report.deadletter_count}")


@task
def drain_dead_letter(c: Context, tries: int = 1, chunk_size: int = 5, env_file: str = ".env"):
    """
    Retry the uploads waiting in the dead letter.

    Args:
        c (Context): Invoke context.
        tries (int): Number of passes over the dead letter. Default is 1.
        chunk_size (int): Uploads retried concurrently. Default is 5.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    _load_environment(env_file)
    session = _build_session()

    try:
        remaining = session.drainer.drain(tries, chunk_size)
    except PhotoFrameError as e:
        raise Exit(e.user_message, code=1) from e

    print(f"Dead letter entries remaining: {remaining}")


@task
def show_dead_letter(c: Context, as_json: bool = False, env_file: str = ".env"):
    """
    Print the uploads waiting in the dead letter.

    Args:
        c (Context): Invoke context.
        as_json (bool): Print the entries as JSON.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    _load_environment(env_file)
    session = _build_session(authenticate=False)
    entries = session.dead_letter.entries()

    if as_json:
        print(json.dumps([entry.to_dict() for entry in entries], indent=2))
        return

    for entry in entries:
        print(f"{entry.key}\t{entry.album_id}\t{entry.file_path}\t{entry.last_error or ''}")
    print(f"\n{len(entries)} entry(ies) in the dead letter")


@task
def clear_cache(c: Context, env_file: str = ".env"):
    """
    Clear the photo, album and search caches. The dead letter is kept.

    Args:
        c (Context): Invoke context.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    _load_environment(env_file)
    session = _build_session(authenticate=False)
    session.caches.clear_all_cache()
    print("Caches cleared")


namespace = Collection.from_module(sys.modules[__name__])
program = Program(namespace=namespace, version=__version__)
