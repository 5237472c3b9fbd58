"""
Main Streamlit application for photoframe.

Shows the photo queue, lets the user fill it from an album or a search, and
imports local folders into albums.
"""

import streamlit as st

from photoframe.config import get_env
from photoframe.error_handling import PhotoFrameError
from photoframe.logging_config import configure_structured_logging, get_logger
from photoframe.session import PhotoFrameSession, create_session

# Configure structured logging
configure_structured_logging()
logger = get_logger(__name__)

PAGES = {"queue": "🖼️ Queue", "albums": "📚 Albums", "search": "🔎 Search", "import": "📂 Import"}


def initialize_session_state() -> None:
    """Initialize session state variables."""
    if "current_page" not in st.session_state:
        st.session_state.current_page = "queue"

    if "photoframe" not in st.session_state:
        user_id = get_env("PHOTOFRAME_USER_ID", "default")
        session = create_session(user_id)
        refresh_token = get_env("PHOTOFRAME_REFRESH_TOKEN")
        if refresh_token:
            session.auth.set_tokens(None, refresh_token, profile_id=user_id)
        st.session_state.photoframe = session


def render_sidebar(session: PhotoFrameSession) -> None:
    with st.sidebar:
        st.title("📸 photoframe")
        for page, label in PAGES.items():
            if st.button(label, use_container_width=True):
                st.session_state.current_page = page

        st.divider()
        st.caption(f"Dead letter: {session.dead_letter.count()} entry(ies)")

        if st.button("Clear caches", use_container_width=True):
            session.caches.clear_all_cache()
            st.success("Caches cleared")

        if session.auth.has_credential and st.button("Sign out", use_container_width=True):
            session.search.logout(session.user_id)
            st.rerun()


def render_photos(queue: dict) -> None:
    photos = queue.get("photos") or []
    if not photos:
        st.info("The queue is empty. Load an album or run a search.")
        return

    st.write(f"{len(photos)} photo(s)")
    columns = st.columns(4)
    for index, photo in enumerate(photos):
        with columns[index % 4]:
            if photo.get("baseUrl"):
                st.image(f"{photo['baseUrl']}=w400-h400", caption=photo.get("filename"))
            else:
                st.write(photo.get("filename"))


def render_queue_page(session: PhotoFrameSession) -> None:
    st.header("Queue")
    render_photos(session.search.get_queue(session.user_id))


def render_albums_page(session: PhotoFrameSession) -> None:
    st.header("Albums")
    albums = session.albums.get_albums(session.user_id)
    titles = {f"{album.title} ({album.media_items_count or 0})": album for album in albums}
    selected = st.selectbox("Album", list(titles))

    if selected and st.button("Load album", type="primary"):
        render_photos(session.search.load_from_album(session.user_id, titles[selected].id))


def render_search_page(session: PhotoFrameSession) -> None:
    st.header("Search")
    with st.form("search"):
        included = st.text_input("Included categories (comma separated)")
        excluded = st.text_input("Excluded categories (comma separated)")
        date_filter = st.radio("Date filter", ["none", "exact", "range"], horizontal=True)
        col1, col2 = st.columns(2)
        with col1:
            start = st.date_input("Date / start", value=None)
        with col2:
            end = st.date_input("End", value=None)
        submitted = st.form_submit_button("Search", type="primary")

    if not submitted:
        return

    form = {
        "includedCategories": [c.strip().upper() for c in included.split(",") if c.strip()],
        "excludedCategories": [c.strip().upper() for c in excluded.split(",") if c.strip()],
    }
    if date_filter == "exact" and start:
        form.update(dateFilter="exact", exactYear=start.year, exactMonth=start.month, exactDay=start.day)
    elif date_filter == "range" and start and end:
        form.update(dateFilter="range", startYear=start.year, startMonth=start.month, startDay=start.day)
        form.update(endYear=end.year, endMonth=end.month, endDay=end.day)

    render_photos(session.search.load_from_search(session.user_id, form))


def render_import_page(session: PhotoFrameSession) -> None:
    st.header("Import folders")
    folders = session.scanner.list_folders()
    labels = {f"{folder.name} ({folder.item_count})": folder for folder in folders}
    selected = st.multiselect("Folders", list(labels))

    if st.button("Import", type="primary", disabled=not selected):
        with st.spinner("Importing..."):
            report = session.importer.import_folders(session.user_id, [labels[label] for label in selected])

        st.success(f"Imported {report.total_items} item(s). Dead letter: {report.deadletter_count}")
        st.table([result.to_dict() for result in report.folders_result])


def render_main_content(session: PhotoFrameSession) -> None:
    """Render the main content area based on current page with error handling."""
    current_page = st.session_state.current_page

    try:
        if current_page == "queue":
            render_queue_page(session)
        elif current_page == "albums":
            render_albums_page(session)
        elif current_page == "search":
            render_search_page(session)
        elif current_page == "import":
            render_import_page(session)
        else:
            st.warning(f"Page '{current_page}' not found.")
    except PhotoFrameError as e:
        logger.warning("page_error", page=current_page, code=e.code)
        st.error(e.user_message)
        with st.expander("Details"):
            st.json(e.get_error_info().to_dict())


def main() -> None:
    """Main application entry point."""
    logger.info("application_starting", page="main")

    st.set_page_config(page_title="photoframe", page_icon="📸", layout="wide")
    initialize_session_state()

    session: PhotoFrameSession = st.session_state.photoframe
    render_sidebar(session)

    if not session.auth.has_credential:
        st.warning("No Google credential. Set PHOTOFRAME_REFRESH_TOKEN and restart.")
        if st.session_state.current_page != "import":
            return

    render_main_content(session)


if __name__ == "__main__":
    main()
