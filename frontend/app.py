# Streamlit UI that talks to the FastAPI backend
import json
import os

import requests
import streamlit as st
from dotenv import load_dotenv

load_dotenv()

API = os.getenv("API_URL", "http://localhost:8000") + "/api/v1"


def show_error(resp):
    try:
        st.error(resp.json().get("message", resp.text))
    except ValueError:
        st.error(resp.text)


def fetch(path):
    r = requests.get(f"{API}{path}")
    return r.json() if r.ok else []


st.set_page_config(page_title="RFP Flow", layout="wide")
st.title("RFP Flow")

tabs = st.tabs(["Create RFP", "Vendors", "Send RFP", "Inbound (simulate)", "Proposals"])

# Create RFP
with tabs[0]:
    st.header("Create RFP (from natural language)")
    raw = st.text_area("Describe procurement need:",
                       "I need 20 laptops (16GB RAM) and 15 monitors 27-inch. Budget $50,000. "
                       "Delivery within 30 days. Payment net 30. Warranty 12 months.",
                       height=200)
    if st.button("Structure with AI"):
        r = requests.post(f"{API}/rfps/generate", json={"raw_requirements": raw})
        if r.ok:
            st.session_state["draft"] = r.json()
        else:
            show_error(r)
    draft = st.session_state.get("draft")
    if draft:
        title = st.text_input("Title", value=draft["title"])
        structured = st.text_area("Structured requirements (JSON)",
                                  json.dumps(draft["structured_requirements"], indent=2), height=300)
        if st.button("Save RFP"):
            try:
                payload = {"title": title, "raw_requirements": raw,
                           "structured_requirements": json.loads(structured)}
            except ValueError as e:
                st.error(f"Structured requirements are not valid JSON: {e}")
            else:
                r = requests.post(f"{API}/rfps", json=payload)
                if r.ok:
                    st.success(f"RFP #{r.json()['id']} saved as draft")
                    del st.session_state["draft"]
                else:
                    show_error(r)

# Vendors
with tabs[1]:
    st.header("Vendors")
    name = st.text_input("Name", value="Acme Corp")
    email = st.text_input("Email", value="sales@acme.com")
    description = st.text_input("Description", value="")
    if st.button("Add Vendor"):
        r = requests.post(f"{API}/vendors", json={"name": name, "email": email,
                                                  "description": description or None})
        if r.ok:
            st.success("Added vendor")
        else:
            show_error(r)
    st.dataframe(fetch("/vendors"))

# Send RFP
with tabs[2]:
    st.header("Send RFP to vendors")
    rfps = fetch("/rfps")
    rmap = {f"RFP #{x['id']} - {x['title']} ({x['status']})": x["id"] for x in rfps}
    sel_rfp_label = st.selectbox("Select RFP", options=list(rmap.keys()), key="send_rfp")
    vendors = fetch("/vendors")
    vmap = {f"{v['name']} <{v['email']}>": v["id"] for v in vendors}
    sel_vendors = st.multiselect("Vendors to send to", options=list(vmap.keys()))
    if st.button("Send"):
        if not sel_rfp_label:
            st.error("Choose an RFP")
        else:
            rfp_id = rmap[sel_rfp_label]
            resp = requests.post(f"{API}/rfps/{rfp_id}/send",
                                 json={"vendor_ids": [vmap[k] for k in sel_vendors]})
            if resp.ok:
                st.success(resp.json()["message"])
            else:
                show_error(resp)

# Inbound simulate
with tabs[3]:
    st.header("Simulate inbound vendor reply (webhook)")
    from_email = st.text_input("From (must match a vendor email exactly)", value="sales@acme.com")
    subject = st.text_input("Subject (include RFP #<id> to link)", value="Re: RFP #1 - Proposal")
    body = st.text_area("Body", value="We can supply everything for $45,000. Delivery 25 days. Warranty 12 months.")
    if st.button("Submit inbound"):
        r = requests.post(f"{API}/proposals/inbound",
                          json={"from": from_email, "subject": subject, "body": body})
        if r.ok and r.json().get("success"):
            st.success("Proposal received and scored")
            st.json(r.json())
        elif r.ok:
            st.warning(f"Not processed: {r.json().get('message')}")
        else:
            show_error(r)

# Proposals + recommendation
with tabs[4]:
    st.header("Proposals and recommendation")
    rfps = fetch("/rfps")
    rmap = {f"RFP #{x['id']} - {x['title']}": x["id"] for x in rfps}
    sel = st.selectbox("RFP", options=list(rmap.keys()), key="proposals_rfp")
    if sel:
        rfp_id = rmap[sel]
        names = {v["id"]: v["name"] for v in fetch("/vendors")}
        proposals = fetch(f"/rfps/{rfp_id}/proposals")
        for p in proposals:
            with st.expander(f"{names.get(p['vendor_id'], 'Unknown Vendor')}: score {p['score']}"):
                st.write(p["ai_analysis"])
                st.json(p["structured_response"] or {})
                st.code(p["raw_response"])
        if st.button("Get AI recommendation"):
            resp = requests.get(f"{API}/rfps/{rfp_id}/recommendation")
            if resp.ok:
                rec = resp.json()
                st.subheader(rec["recommendation"])
                st.write(rec["reasoning"])
            else:
                show_error(resp)
