from __future__ import annotations

import logging

import streamlit as st

from pgvms.services.demo_data import load_sample_state
from pgvms.state import AppState

STATE_KEY = "pgvms_state"

logger = logging.getLogger(__name__)


def get_state() -> AppState:
    """
    The session's current snapshot. Seeded from sample data on first access;
    lost when the session ends.
    """
    if STATE_KEY not in st.session_state:
        logger.info("Seeding session state from sample data")
        st.session_state[STATE_KEY] = load_sample_state()
    return st.session_state[STATE_KEY]


def set_state(state: AppState) -> None:
    # Whole-snapshot swap; readers on the next rerun see only the new one.
    st.session_state[STATE_KEY] = state
