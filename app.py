"""
Unified Grades Dashboard

Streamlit front end for exchanging grade sheets with the Unified API:
sign in, pick a group and discipline, edit grades inline, export to Excel
and import a filled sheet back.
"""

import streamlit as st
import pandas as pd

from unified import (
    EndpointTracker,
    GradesWorkspace,
    UnifiedClient,
    load_config,
    validate_config,
    validate_roster,
)
from unified.app_logger import setup_logging
from unified.cell_editor import FAILED, INVALID, SAVED
from unified.errors import (
    GradeSheetError,
    ImportAbortedError,
    SessionExpiredError,
    UnifiedError,
)
from unified.models import Role
from unified.workspace import AVERAGE_COLUMN, ID_COLUMN, NAME_COLUMN


# Page configuration
st.set_page_config(
    page_title="Unified Grades",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS for better styling
st.markdown("""
<style>
    .stDataFrame td {
        text-align: center;
    }
    .group-badge {
        display: inline-block;
        padding: 2px 10px;
        margin-right: 6px;
        border-radius: 10px;
        border: 1px solid #c0c0c0;
        font-size: 0.85em;
    }
</style>
""", unsafe_allow_html=True)


def init_session_state():
    """Initialize session state with default values."""
    if "config" not in st.session_state:
        st.session_state.config = load_config()
        setup_logging(st.session_state.config.get("log_level"))

    # One tracker per session, shared by the client and the developer overlay
    if "tracker" not in st.session_state:
        st.session_state.tracker = EndpointTracker()
        st.session_state.tracker.subscribe(show_endpoint_toast)

    if "developer_mode" not in st.session_state:
        st.session_state.developer_mode = bool(st.session_state.config.get("developer_mode"))

    if "client" not in st.session_state:
        st.session_state.client = UnifiedClient.from_config(
            st.session_state.config, tracker=st.session_state.tracker
        )

    if "role" not in st.session_state:
        st.session_state.role = None

    if "workspace" not in st.session_state:
        st.session_state.workspace = None

    if "grid_version" not in st.session_state:
        st.session_state.grid_version = 0


def show_endpoint_toast(call):
    """Developer overlay: one toast per remote call."""
    if st.session_state.get("developer_mode"):
        st.toast(f"{call.method} {call.endpoint} · {call.describe()}")


def sign_out(message: str | None = None):
    st.session_state.client.token = None
    st.session_state.role = None
    st.session_state.workspace = None
    if message:
        st.session_state.flash = message


def render_sidebar():
    """Render navigation, session info and developer switches."""
    st.sidebar.header("Unified")

    role = st.session_state.role
    if role is not None:
        st.sidebar.markdown(f"Signed in as **{role.label}**")
        if st.sidebar.button("Sign out"):
            sign_out()
            st.rerun()

    st.sidebar.divider()
    st.session_state.developer_mode = st.sidebar.toggle(
        "Developer mode",
        value=st.session_state.developer_mode,
        help="Show a toast for every API call"
    )

    for issue in validate_config(st.session_state.config):
        if issue["type"] == "error":
            st.sidebar.error(f"❌ {issue['message']}")


def render_login():
    """Render the sign-in form (or resume a configured token)."""
    st.header("Sign in")

    if "flash" in st.session_state:
        st.warning(st.session_state.pop("flash"))

    client = st.session_state.client

    with st.form("login_form"):
        username = st.text_input("EDBO code", help="At least 8 characters")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")

    if submitted:
        if len(username) < 8:
            st.error("EDBO code must be at least 8 characters")
        elif not password:
            st.error("Enter your password")
        else:
            try:
                session = client.login(username, password)
            except UnifiedError as e:
                st.error(f"Sign-in failed: {e}")
            else:
                st.session_state.role = session.role
                st.rerun()

    if client.token:
        if st.button("Continue with configured token"):
            try:
                session = client.check_token()
            except UnifiedError as e:
                st.error(f"Token rejected: {e}")
            else:
                st.session_state.role = session.role
                st.rerun()


def get_workspace() -> GradesWorkspace:
    if st.session_state.workspace is None:
        workspace = GradesWorkspace(
            st.session_state.client, st.session_state.role, st.session_state.config
        )
        workspace.load_groups()
        st.session_state.workspace = workspace
    return st.session_state.workspace


def render_selectors(workspace: GradesWorkspace) -> str:
    """Render group / discipline selectors and the search box; returns the search text."""
    col1, col2 = st.columns(2)

    with col1:
        codes = [g.code for g in workspace.groups]
        labels = {g.code: f"{g.title or g.code} ({g.course} course, {g.degree})" for g in workspace.groups}
        group_code = st.selectbox(
            "Group",
            options=[""] + codes,
            index=([""] + codes).index(workspace.group_code) if workspace.group_code in codes else 0,
            format_func=lambda c: labels.get(c, "Select a group")
        )

    with col2:
        disciplines = workspace.disciplines_for(group_code)
        current = workspace.discipline if workspace.discipline in disciplines else ""
        discipline = st.selectbox(
            "Discipline",
            options=[""] + disciplines,
            index=([""] + disciplines).index(current),
            format_func=lambda d: d or "Select a discipline",
            disabled=not group_code
        )

    workspace.select(group_code, discipline)

    search = ""
    if workspace.has_selection:
        search = st.text_input("Search student", placeholder="Last or first name")

        group = workspace.find_group(workspace.group_code)
        if group is not None:
            badges = [group.title, group.specialty, f"{group.course} course", group.degree, workspace.discipline]
            st.markdown(
                "".join(f'<span class="group-badge">{b}</span>' for b in badges if b),
                unsafe_allow_html=True
            )

    return search


def render_exchange(workspace: GradesWorkspace):
    """Render export download and import upload."""
    col1, col2 = st.columns(2)

    with col1:
        st.subheader("📥 Export")
        filename, data = workspace.export()
        st.download_button(
            "Download grade sheet",
            data=data,
            file_name=filename,
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            type="primary"
        )
        st.caption("Edit grades in Excel and keep the first five rows unchanged")

    with col2:
        st.subheader("📤 Import")
        uploaded = st.file_uploader(
            "Upload filled grade sheet",
            type=["xlsx"],
            key=f"import_{workspace.group_code}_{workspace.discipline}",
            label_visibility="collapsed"
        )
        if uploaded is not None and st.button("Import grades"):
            with st.spinner("Importing grades..."):
                try:
                    report = workspace.import_file(uploaded)
                except GradeSheetError as e:
                    st.error(f"❌ {e}")
                except ImportAbortedError as e:
                    st.error(f"❌ {e}")
                    st.dataframe(pd.DataFrame([
                        {
                            "EDBO ID": r.submission.edbo_id,
                            "Date": r.submission.date,
                            "Grade": r.submission.grade,
                            "Status": r.status,
                            "Error": r.error or "",
                        }
                        for r in e.report.results
                    ]), hide_index=True)
                    if e.report.refetch_error:
                        st.warning(f"⚠️ Grades could not be reloaded: {e.report.refetch_error}")
                    st.session_state.grid_version += 1
                else:
                    st.success(f"✓ {report.summary()}")
                    if report.refetch_error:
                        st.warning(f"⚠️ Grades could not be reloaded: {report.refetch_error}")
                    st.session_state.grid_version += 1


def render_grid(workspace: GradesWorkspace, search: str):
    """Render the inline grade grid and commit edited cells."""
    frame = workspace.grade_frame(search)
    if frame.empty:
        st.info("No students found" if search else "No data for this group")
        return

    dates = [c for c in frame.columns if c not in (ID_COLUMN, NAME_COLUMN, AVERAGE_COLUMN)]
    st.subheader("📊 Grade book")
    st.caption(f"{len(frame)} students • {len(dates)} dates")

    for issue in validate_roster(workspace.assessments):
        st.warning(f"⚠️ {issue['message']}")

    max_grade = workspace.grade_system.max_grade
    edited = st.data_editor(
        frame,
        hide_index=True,
        use_container_width=True,
        disabled=[ID_COLUMN, NAME_COLUMN, AVERAGE_COLUMN],
        column_config={
            date: st.column_config.TextColumn(date[:5].replace("-", "."), help=f"1-{max_grade}")
            for date in dates
        },
        key=f"grid_{workspace.group_code}_{workspace.discipline}_{st.session_state.grid_version}"
    )

    results = workspace.apply_frame_edits(frame, edited)
    if not results:
        return

    for result in results:
        if result.status == SAVED:
            st.toast(f"✓ {result.message}")
        elif result.status in (FAILED, INVALID):
            st.toast(f"❌ {result.message}")

    # Rebuild the widget so refused or reverted cells show the committed grade again
    st.session_state.grid_version += 1
    st.rerun()


def render_grades_page():
    """Render the grades page for admins and teachers."""
    role = st.session_state.role
    st.header("Grades" if role is Role.ADMIN else "My grade book")

    workspace = get_workspace()
    search = render_selectors(workspace)

    if not workspace.has_selection:
        st.info("Select a group and discipline to open the grade book")
        return

    render_exchange(workspace)
    st.divider()
    render_grid(workspace, search)


def main():
    """Main application entry point."""
    init_session_state()

    st.title("📊 Unified")

    render_sidebar()

    if st.session_state.role is None:
        render_login()
        return

    if not st.session_state.role.can_exchange_grades:
        st.info("Grade books are available to teachers and administrators only.")
        return

    try:
        render_grades_page()
    except SessionExpiredError as e:
        sign_out(str(e))
        st.rerun()
    except UnifiedError as e:
        st.error(f"❌ {e}")


if __name__ == "__main__":
    main()
