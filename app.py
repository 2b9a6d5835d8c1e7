"""Streamlit front-end for the entitlement reconciliation engine."""
from __future__ import annotations

import dataclasses
from io import BytesIO

import pandas as pd
import streamlit as st

from entitlement_recon import (
    EntitlementReconciler,
    ReconcileEntitlementsUseCase,
    ReconciliationContext,
    SalesforceRequestRepository,
    SmlTenantRepository,
)
from entitlement_recon.config import SETTINGS, AbsentDatePolicy
from entitlement_recon.domain.models import Category, EntitlementSnapshot
from entitlement_recon.domain.normalization import DEFAULT_ALIASES
from entitlement_recon.domain.results import ReconciliationReport
from entitlement_recon.errors import PayloadDecodeError
from entitlement_recon.infrastructure.parsing.payloads import decode_payload, order_requests
from entitlement_recon.infrastructure.storage import alias_store
from entitlement_recon.presentation.diff_report import entries_to_rows, render_csv, render_excel, render_html


st.set_page_config(page_title="Entitlement Reconciliation", layout="wide")
st.title("Entitlement Reconciliation")

MODE_PS = "PS request vs PS request"
MODE_SML = "PS request vs SML tenant"


def load_alias_dataframe() -> pd.DataFrame:
    overrides = alias_store.load_overrides(SETTINGS.alias_file)
    return pd.DataFrame(
        [
            {
                "category": category.value,
                "field": field_name,
                "aliases": ", ".join(overrides.get(category, {}).get(field_name, [])),
                "built_in": ", ".join(defaults),
            }
            for category, fields in DEFAULT_ALIASES.items()
            for field_name, defaults in fields.items()
        ],
        columns=["category", "field", "aliases", "built_in"],
    )


def snapshot_to_dataframe(snapshot: EntitlementSnapshot, category: Category) -> pd.DataFrame:
    return pd.DataFrame(list(snapshot.records(category)))


def _decoded_or_bytes(raw: bytes) -> object:
    try:
        return decode_payload(raw)
    except PayloadDecodeError:
        return raw


def run_reconciliation(
    mode: str, first_bytes: bytes, second_bytes: bytes, isolate: bool, quantity_as_attribute: bool
) -> tuple[ReconciliationReport, EntitlementSnapshot, EntitlementSnapshot]:
    settings = dataclasses.replace(
        SETTINGS,
        absent_date_policy=AbsentDatePolicy.ISOLATE if isolate else AbsentDatePolicy.SENTINEL,
        quantity_in_identity=not quantity_as_attribute,
    )
    if mode == MODE_PS:
        previous, current = order_requests(_decoded_or_bytes(first_bytes), _decoded_or_bytes(second_bytes))
        previous_repo = SalesforceRequestRepository(previous, label="previous")
        current_repo = SalesforceRequestRepository(current, label="current")
    else:
        previous_repo = SalesforceRequestRepository(BytesIO(first_bytes), label="salesforce")
        current_repo = SmlTenantRepository(BytesIO(second_bytes), label="sml")
    context = ReconciliationContext(
        previous_repository=previous_repo,
        current_repository=current_repo,
        reconciler=EntitlementReconciler(settings, aliases=alias_store.load_aliases(settings.alias_file)),
    )
    return ReconcileEntitlementsUseCase(context).execute()


if "view" not in st.session_state:
    st.session_state["view"] = "compare"
if "result" not in st.session_state:
    st.session_state["result"] = None


if st.session_state["view"] == "compare":
    mode = st.radio("Comparison", [MODE_PS, MODE_SML], horizontal=True)
    col1, col2 = st.columns(2)
    with col1:
        first_file = st.file_uploader("Upload PS request JSON", type=["json"])
    with col2:
        label = "Upload second PS request JSON" if mode == MODE_PS else "Upload SML tenant JSON"
        second_file = st.file_uploader(label, type=["json"])

    isolate = st.checkbox("Never merge records with missing dates", value=False)
    quantity_as_attribute = st.checkbox("Treat app quantity as a compared attribute", value=False)

    st.subheader("Field Alias Editor")
    with st.expander("Source key aliases tried before the built-in ones", expanded=False):
        alias_df = load_alias_dataframe()
        edited_df = st.data_editor(
            alias_df,
            hide_index=True,
            key="alias_editor",
            use_container_width=True,
            disabled=["category", "field", "built_in"],
        )
        if st.button("Save aliases", key="save_aliases_btn"):
            overrides: dict[str, dict[str, list[str]]] = {}
            for _, row in edited_df.iterrows():
                text = row["aliases"] if isinstance(row["aliases"], str) else ""
                keys = [key.strip() for key in text.split(",") if key.strip()]
                if not keys:
                    continue
                overrides.setdefault(str(row["category"]), {})[str(row["field"])] = keys
            alias_store.save_aliases(overrides, SETTINGS.alias_file)
            st.success("Aliases saved")
            st.rerun()

    run_btn = st.button("Run Reconciliation", disabled=not (first_file and second_file))
    if run_btn and first_file and second_file:
        with st.spinner("Reconciling..."):
            report, previous, current = run_reconciliation(
                mode, first_file.read(), second_file.read(), isolate, quantity_as_attribute
            )
        st.session_state["result"] = {
            "report": report,
            "previous": previous,
            "current": current,
            "diff_csv": render_csv(report),
            "diff_html": render_html(report),
            "diff_xlsx": render_excel(report),
        }
        st.session_state["view"] = "results"
        st.rerun()
else:
    if st.button("← Back", key="back_to_compare"):
        st.session_state["view"] = "compare"
        st.session_state["result"] = None
        st.rerun()

    result = st.session_state.get("result")
    if not result:
        st.info("No results available. Upload files and run the reconciliation first.")
    else:
        report: ReconciliationReport = result["report"]
        st.subheader(f"{report.previous_label} → {report.current_label}")
        summary = report.summary
        metric_cols = st.columns(4)
        metric_cols[0].metric("Added", summary.added)
        metric_cols[1].metric("Removed", summary.removed)
        metric_cols[2].metric("Updated", summary.updated)
        metric_cols[3].metric("Unchanged", summary.unchanged)

        tabs = st.tabs([category.value.capitalize() for category in Category] + ["Raw input"])
        for tab, comparison in zip(tabs, report.iter_comparisons()):
            with tab:
                rows = entries_to_rows(comparison)
                if rows:
                    st.dataframe(pd.DataFrame(rows), use_container_width=True)
                else:
                    st.caption(f"No {comparison.category.value} found in either snapshot.")
        with tabs[-1]:
            for category in Category:
                st.markdown(f"**{category.value.capitalize()}**")
                left, right = st.columns(2)
                left.dataframe(snapshot_to_dataframe(result["previous"], category))
                right.dataframe(snapshot_to_dataframe(result["current"], category))

        st.download_button(
            "Download diff CSV",
            data=result["diff_csv"],
            file_name="entitlement_diff.csv",
            mime="text/csv",
        )
        st.download_button(
            "Download diff Excel",
            data=result["diff_xlsx"],
            file_name="entitlement_diff.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
        st.download_button(
            "Download diff HTML",
            data=result["diff_html"].encode("utf-8"),
            file_name="entitlement_diff.html",
            mime="text/html",
        )
