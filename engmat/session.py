"""Streamlit glue shared by app.py and the pages."""
from __future__ import annotations

from datetime import date

import streamlit as st

from .auth import AuthError, Authenticator, DbAuthenticator, LocalAuthenticator
from .config import AppConfig, configure_logging, load_config
from .models import FACTORY_OPTIONS
from .reporting import ReportFilter
from .service import DataService, SaveResult
from .store import Store, open_store


@st.cache_resource(show_spinner=False)
def get_config() -> AppConfig:
    config = load_config()
    configure_logging(config.log_level)
    return config


@st.cache_resource(show_spinner=False)
def get_store() -> Store:
    """Backend picked once per process."""
    return open_store(get_config())


def get_auth() -> Authenticator:
    if "auth" not in st.session_state:
        store = get_store()
        if get_config().uses_database:
            st.session_state.auth = DbAuthenticator(store.engine)
        else:
            st.session_state.auth = LocalAuthenticator(store)
    return st.session_state.auth


def get_service() -> DataService:
    if "service" not in st.session_state:
        st.session_state.service = DataService(get_store())
    return st.session_state.service


def login_form(auth: Authenticator) -> None:
    st.title("Central de Controle")
    with st.form("login_form"):
        email = st.text_input("E-mail")
        password = st.text_input("Senha", type="password")
        c1, c2 = st.columns(2)
        with c1:
            do_login = st.form_submit_button("Entrar")
        with c2:
            do_register = st.form_submit_button("Criar conta")
    if do_login or do_register:
        try:
            if do_register:
                auth.register(email, password)
            else:
                auth.login(email, password)
        except AuthError as e:
            st.error(str(e))
        else:
            st.rerun()


def require_service() -> DataService:
    """Gate a page behind login; returns the connected data service."""
    auth = get_auth()
    service = get_service()
    if not auth.is_authenticated:
        service.disconnect()
        login_form(auth)
        st.stop()

    if service.connected:
        service.store.refresh()
    else:
        service.connect()

    with st.sidebar:
        st.caption(f"👤 {auth.current_user.name}")
        if st.button("Sair"):
            auth.logout()
            service.disconnect()
            st.rerun()
    return service


def period_filter(key: str, with_factory: bool = True) -> ReportFilter:
    """Date range (default: current month) and optional factory inputs."""
    default = ReportFilter.current_month(date.today())
    c1, c2, c3 = st.columns(3)
    with c1:
        start = st.date_input("De", value=date.fromisoformat(default.start), key=f"{key}_start")
    with c2:
        end = st.date_input("Até", value=date.fromisoformat(default.end), key=f"{key}_end")
    factory = None
    if with_factory:
        with c3:
            choice = st.selectbox("Fábrica", ["(todas)"] + FACTORY_OPTIONS, key=f"{key}_factory")
            factory = None if choice == "(todas)" else choice
    return ReportFilter(start=start.isoformat(), end=end.isoformat(), factory=factory)


def show_result(result: SaveResult, success: str) -> bool:
    if result.ok:
        st.success(success)
    else:
        st.error(f"Não foi possível salvar: {result.error}")
    return result.ok
