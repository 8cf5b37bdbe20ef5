import os
from datetime import date, timedelta

import requests
import streamlit as st

BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")
USER_ID = os.getenv("DASHBOARD_USER_ID", "demo-tourist")
HEADERS = {"X-User-Id": USER_ID}


def get_json(path: str, **params) -> dict:
    resp = requests.get(f"{BACKEND_URL}{path}", params=params, headers=HEADERS, timeout=10)
    resp.raise_for_status()
    return resp.json()


def post_json(path: str, payload: dict | None = None) -> dict:
    resp = requests.post(f"{BACKEND_URL}{path}", json=payload, headers=HEADERS, timeout=15)
    resp.raise_for_status()
    return resp.json()


st.set_page_config(page_title="Adriatic Marketplace", layout="wide")
st.title("Adriatic Marketplace")
st.caption("Backend: FastAPI | UI: Streamlit | Payments simulated")

try:
    locations = get_json("/locations/")
except requests.RequestException as exc:
    st.error(f"Backend unavailable: {exc}")
    st.stop()

names = {loc["id"]: f"{loc['name']} ({loc['type'].lower()})" for loc in locations}

heatmap_tab, predictions_tab, journey_tab = st.tabs(["Crowds now", "Best time to go", "Plan a journey"])

with heatmap_tab:
    if st.button("Refresh crowd data"):
        refreshed = post_json("/crowd/refresh")
        st.success(f"Refreshed {refreshed['refreshed']} locations")
    heatmap = get_json("/crowd/heatmap")
    if not heatmap["points"]:
        st.info("No recent crowd data. Refresh to collect it.")
    else:
        rows = sorted(heatmap["points"], key=lambda p: p["crowd_index"], reverse=True)
        st.dataframe(
            [
                {
                    "Location": p["name"],
                    "Type": p["type"].lower(),
                    "Crowd index": p["crowd_index"],
                    "Level": p["crowd_level"].replace("_", " ").lower(),
                }
                for p in rows
            ],
            use_container_width=True,
        )
        st.map(
            [{"lat": p["latitude"], "lon": p["longitude"]} for p in rows],
            latitude="lat",
            longitude="lon",
        )

with predictions_tab:
    location_id = st.selectbox("Location", options=list(names), format_func=names.get)
    day = st.date_input("Day", value=date.today() + timedelta(days=1))
    if location_id:
        prediction = get_json(f"/crowd/locations/{location_id}/predictions", on=day.isoformat())
        cols = st.columns(3)
        best = prediction.get("best_time_hour")
        cols[0].metric("Best time", f"{best}:00" if best is not None else "n/a")
        forecast = prediction.get("weather_forecast")
        if forecast:
            cols[1].metric("Weather", f"{forecast['temperature']:.0f}°C {forecast['condition']}")
        cols[2].metric("Events", len(prediction["upcoming_events"]))
        st.bar_chart(
            {str(h["hour"]): h["predicted_index"] for h in prediction["hourly_predictions"]}
        )
        for event in prediction["upcoming_events"]:
            st.markdown(f"- {event}")

with journey_tab:
    with st.form("journey_form"):
        origin = st.selectbox("From", options=list(names), format_func=names.get)
        destination = st.selectbox("To", options=list(names), format_func=names.get)
        start = st.date_input("Start", value=date.today() + timedelta(days=7))
        end = st.date_input("End", value=date.today() + timedelta(days=10))
        travelers = st.number_input("Travelers", min_value=1, max_value=50, value=2)
        budget = st.selectbox("Budget", options=["BUDGET", "STANDARD", "PREMIUM", "LUXURY"], index=1)
        submitted = st.form_submit_button("Plan journey")

    if submitted:
        payload = {
            "origin_location_id": origin,
            "dest_location_id": destination,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "travelers": int(travelers),
            "preferences": {"budget": budget},
            "auto_plan": True,
        }
        try:
            st.session_state["journey"] = post_json("/journeys/", payload)
        except requests.HTTPError as exc:
            st.error(f"Planning failed: {exc.response.text}")
            st.session_state.pop("journey", None)

    journey = st.session_state.get("journey")
    if journey:
        st.header(f"{journey['name']} ({journey['start_date']} → {journey['end_date']})")
        st.metric("Total", f"{journey['total_price']:.0f} {journey['currency']}")
        for segment in journey["segments"]:
            origin_name = (segment.get("departure_location") or {}).get("name", "?")
            dest_name = (segment.get("arrival_location") or {}).get("name", "?")
            st.markdown(
                f"**{segment['segment_order']}. {segment['segment_type'].replace('_', ' ').title()}** "
                f"{origin_name} → {dest_name}  \n"
                f"{segment.get('service_name') or 'custom'} | "
                f"{segment['price']:.0f} {segment['currency']}"
            )
        if journey["status"] in ("PLANNING", "READY") and st.button("Book this journey"):
            try:
                st.session_state["journey"] = post_json(f"/journeys/{journey['id']}/book", {})
                st.success("Journey booked, suppliers notified")
            except requests.HTTPError as exc:
                st.error(f"Booking failed: {exc.response.text}")
