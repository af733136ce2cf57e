from __future__ import annotations

import logging

import streamlit as st

from frontend.advisor.config import get_client_settings
from frontend.advisor.dispatch import Action, ActionKind, dispatch
from frontend.advisor.state import AdvisorSession
from frontend.advisor.storage import LocalStore
from frontend.advisor.views import catalog_view, selected_panel, transcript_view

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

CARDS_PER_ROW = 3


def _get_session() -> AdvisorSession:
    session = st.session_state.get("advisor_session")
    if session is None:
        settings = get_client_settings().model_copy()
        session = AdvisorSession(settings=settings, store=LocalStore(settings.storage_path))
        session.restore_session()
        st.session_state["advisor_session"] = session
    return session


def _act(session: AdvisorSession, kind: ActionKind, target: object = None) -> None:
    dispatch(session, Action(kind, target))


def _render_sidebar(session: AdvisorSession) -> None:
    st.sidebar.title("Routine Advisor")
    st.sidebar.caption("Pick products, then ask for a routine")

    relay_url = st.sidebar.text_input(
        "Relay URL",
        value=session.settings.relay_url or "",
        placeholder="https://your-relay.example.com/",
    ).strip()
    session.settings.relay_url = relay_url or None

    categories = session.categories()
    choice = st.sidebar.selectbox(
        "Category",
        options=[""] + categories,
        index=([""] + categories).index(session.category or ""),
        format_func=lambda c: c.title() if c else "Choose a category",
    )
    if (choice or None) != session.category:
        _act(session, ActionKind.SELECT_CATEGORY, choice)

    if st.sidebar.button("New conversation", use_container_width=True):
        _act(session, ActionKind.RESET_CONVERSATION)
        st.rerun()


def _render_catalog(session: AdvisorSession) -> None:
    view = catalog_view(session)
    if view.kind != "products":
        st.info(view.message)
        return

    for start in range(0, len(view.cards), CARDS_PER_ROW):
        cols = st.columns(CARDS_PER_ROW)
        for col, card in zip(cols, view.cards[start : start + CARDS_PER_ROW]):
            with col.container(border=True):
                if card.product.image:
                    st.image(card.product.image, use_container_width=True)
                st.markdown(f"**{card.product.name}**")
                st.caption(card.product.brand)
                with st.expander("Details"):
                    st.write(card.product.description)
                label = "Selected ✓" if card.selected else "Select"
                if st.button(
                    label,
                    key=f"toggle-{card.product.id}",
                    type="primary" if card.selected else "secondary",
                    use_container_width=True,
                ):
                    _act(session, ActionKind.TOGGLE_PRODUCT, card.product.id)
                    st.rerun()


def _render_selected(session: AdvisorSession) -> None:
    panel = selected_panel(session)
    st.subheader("Selected products")
    if panel.empty_message:
        st.caption(panel.empty_message)

    for product in panel.products:
        name_col, remove_col = st.columns([5, 1])
        name_col.write(f"{product.name} · {product.brand}")
        if remove_col.button("✕", key=f"remove-{product.id}"):
            _act(session, ActionKind.REMOVE_PRODUCT, product.id)
            st.rerun()

    gen_col, clear_col = st.columns(2)
    if gen_col.button("Generate routine", disabled=not panel.can_generate, use_container_width=True):
        with st.spinner("Building your routine..."):
            _act(session, ActionKind.GENERATE_ROUTINE)
        st.rerun()
    if clear_col.button("Clear all", disabled=not panel.products, use_container_width=True):
        _act(session, ActionKind.CLEAR_SELECTIONS)
        st.rerun()


def _render_chat(session: AdvisorSession) -> None:
    view = transcript_view(session)
    st.subheader("Chat")
    if view.product_context:
        st.caption("Context: " + ", ".join(p.name for p in view.product_context))
    for entry in view.entries:
        with st.chat_message(entry.role):
            st.markdown(entry.content)

    user_prompt = st.chat_input("Ask about your routine or products...")
    if not user_prompt:
        return

    with st.chat_message("user"):
        st.markdown(user_prompt)
    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            _act(session, ActionKind.SUBMIT_MESSAGE, user_prompt)
    st.rerun()


def main() -> None:
    st.set_page_config(
        page_title="Routine Advisor",
        layout="wide",
    )
    session = _get_session()
    _render_sidebar(session)

    st.title("Routine Advisor")
    catalog_col, side_col = st.columns([3, 2])
    with catalog_col:
        _render_catalog(session)
    with side_col:
        _render_selected(session)
        _render_chat(session)


if __name__ == "__main__":
    main()
