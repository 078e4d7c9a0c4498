# dashboard/app.py
"""
Streamlit board for the fermentation tanks.

Polls GET /api/public and renders one card per visible tank plus a table.

Run:
  streamlit run dashboard/app.py
"""

import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pandas as pd
import streamlit as st


# ----------------------------
# Data
# ----------------------------
def fetch_public(base_url: str, timeout_s: float = 5.0) -> Dict[str, Any]:
    url = base_url.rstrip("/") + "/api/public"
    resp = httpx.get(url, timeout=timeout_s)
    resp.raise_for_status()
    body = resp.json()
    if not isinstance(body, dict) or body.get("ok") is not True:
        raise ValueError(f"unexpected response from {url}")
    return body


def items_frame(items: List[Dict[str, Any]]) -> pd.DataFrame:
    cols = ["id", "beer", "style", "abv", "temp", "badgeCN", "dayText", "progress", "start_md", "end_md"]
    if not items:
        return pd.DataFrame(columns=cols)
    return pd.DataFrame(items)[cols].set_index("id")


def server_clock(ms: Optional[int]) -> str:
    if not isinstance(ms, int):
        return "-"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).astimezone().strftime("%H:%M:%S")


def render_card(item: Dict[str, Any]) -> None:
    title = f"{item['id']} · {item['beer']}"
    if item.get("limited"):
        title += " · 限定"
    st.markdown(f"### {title}")
    st.write(f"{item['style']} | ABV {item['abv']} | IBU {item['ibu']} | {item['capacity']}")
    st.metric(item["badgeCN"], item["temp"])
    st.progress(int(item["progress"]) / 100.0, text=f"{item['dayText']}  {item['start_md']} → {item['end_md']}")


def render(data: Dict[str, Any], per_row: int = 4) -> None:
    items = data.get("items") or []
    st.caption(f"server time {server_clock(data.get('server_time'))} | {len(items)} tanks")

    if not items:
        st.warning("No visible tanks. Save some records with show=true.")
        return

    for i in range(0, len(items), per_row):
        cols = st.columns(per_row)
        for col, item in zip(cols, items[i:i + per_row]):
            with col:
                render_card(item)

    st.divider()
    st.subheader("All tanks")
    st.dataframe(items_frame(items), use_container_width=True)


# ----------------------------
# UI
# ----------------------------
st.set_page_config(page_title="Tank Board", layout="wide")
st.title("发酵罐 · Tank Board")

top1, top2 = st.columns(2)

with top1:
    base_url = st.text_input("API base URL", value=os.environ.get("BREWDASH_API", "http://127.0.0.1:8000"))

with top2:
    realtime = st.checkbox("Realtime ON", value=True)
    interval_ms = st.slider("Refresh interval (ms)", 1000, 30000, 5000, step=500)

st.divider()

try:
    data = fetch_public(base_url)
except (httpx.HTTPError, ValueError) as exc:
    st.error(f"Board unavailable: {exc}")
else:
    render(data)

# ----------------------------
# LOOP
# ----------------------------
if realtime:
    time.sleep(interval_ms / 1000.0)
    st.rerun()
