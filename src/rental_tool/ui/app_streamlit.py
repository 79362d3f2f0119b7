"""
Streamlit UI for the Rental Pricing Tool.

Features:
- Upload tab: spreadsheet upload, single product entry, sample template
- Settings tab: supply rate, per-period discount and fee rates, selected period
- Results tab: selected-period table, full breakdown, Excel/CSV export
"""
import streamlit as st
import pandas as pd
import sys
from pathlib import Path
from datetime import datetime

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rental_tool.engine import RentalEngine, ConfigurationError, IngestionError
from rental_tool.config.settings import get_settings
from rental_tool.data.ingest import load_products, build_product, sample_template_bytes
from rental_tool.data.export import export_bytes, export_filename, detail_frame, period_label


st.set_page_config(
    page_title="Rental Pricing Calculator",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_engine():
    """Get cached engine instance."""
    return RentalEngine()


@st.cache_resource
def get_settings_cached():
    """Get cached settings."""
    return get_settings()


try:
    engine = get_engine()
    settings = get_settings_cached()
except Exception as e:
    st.error(f"System Error: {e}")
    st.stop()


# ============================================================================
# CUSTOM CSS & STYLING
# ============================================================================
st.markdown("""
    <style>
        .block-container {
            padding-top: 2rem;
            padding-bottom: 2rem;
        }
        h1 {
            font-family: 'Helvetica Neue', Helvetica, Arial, sans-serif;
            font-weight: 700;
        }
        .stMetric {
            background-color: #f3f0fa;
            padding: 10px;
            border-radius: 5px;
            border-left: 5px solid #6d28d9;
        }
    </style>
""", unsafe_allow_html=True)


# ============================================================================
# SESSION STATE
# ============================================================================
if 'products' not in st.session_state:
    st.session_state.products = []
if 'rate_config' not in st.session_state:
    st.session_state.rate_config = settings.default_rate_config()
if 'ingest_warnings' not in st.session_state:
    st.session_state.ingest_warnings = []


def apply_edit(key: str, edit_name: str, *args):
    """
    Widget callback: replace the config with an edited copy.

    A rejected value leaves the config untouched and puts the widget
    back to the value still in force.
    """
    current = st.session_state.rate_config
    value = st.session_state[key]
    try:
        st.session_state.rate_config = getattr(current, edit_name)(*args, value)
    except ConfigurationError as e:
        st.session_state.config_error = str(e)
        st.session_state[key] = widget_value(current, edit_name, *args)


def widget_value(config, edit_name: str, *args) -> str:
    """Text currently shown for a config field."""
    if edit_name == 'with_supply_rate':
        return f"{config.supply_rate_percent:g}"
    if edit_name == 'with_discount_rate':
        return f"{config.discount_rate_percent[args[0]]:g}"
    return f"{config.fee_rate_percent[args[0]]:g}"


def sync_widgets(config):
    """Seed (or re-seed after a reset) the rate inputs from the config."""
    st.session_state['supply_rate'] = widget_value(config, 'with_supply_rate')
    for period in config.periods:
        st.session_state[f'discount_{period}'] = widget_value(config, 'with_discount_rate', period)
        st.session_state[f'fee_{period}'] = widget_value(config, 'with_fee_rate', period)
    st.session_state['selected_period'] = config.effective_period


def select_period():
    st.session_state.rate_config = st.session_state.rate_config.with_selected_period(
        st.session_state['selected_period']
    )


def format_won(value) -> str:
    return f"{value:,.0f}원"


if 'supply_rate' not in st.session_state:
    sync_widgets(st.session_state.rate_config)

config = st.session_state.rate_config


# ============================================================================
# SIDEBAR: Session Summary
# ============================================================================
with st.sidebar:
    st.header("📦 Products")

    with st.container(border=True):
        st.metric("Loaded", len(st.session_state.products))
        st.caption(f"Supply rate: **{config.supply_rate_percent:g}%**")
        st.caption(f"Selected period: **{period_label(config.effective_period)}**")

    if st.session_state.products:
        if st.button("🗑️ Clear Products", use_container_width=True):
            st.session_state.products = []
            st.session_state.ingest_warnings = []
            st.rerun()

    st.divider()

    if st.button("↩️ Reset Rates to Defaults", use_container_width=True):
        st.session_state.rate_config = settings.default_rate_config()
        sync_widgets(st.session_state.rate_config)
        st.rerun()


# ============================================================================
# MAIN CONTENT: TABBED INTERFACE
# ============================================================================
st.title("Rental Pricing Calculator")
st.caption(f"v1.0 | Rental Engine Active | {datetime.now().strftime('%Y-%m-%d')}")

tab1, tab2, tab3 = st.tabs(["📤 Upload", "⚙️ Settings", "📊 Results"])


# ============================================================================
# TAB 1: UPLOAD
# ============================================================================
with tab1:
    col1, col2 = st.columns([1.5, 1], gap="large")

    with col1:
        st.subheader("Upload Product List")

        with st.container(border=True):
            uploaded = st.file_uploader(
                "Excel or CSV file",
                type=["xlsx", "xls", "csv"],
                help="Needs product name, model name and one-time price columns."
            )

            if uploaded is not None and st.button("📥 Load File", type="primary"):
                with st.spinner("Reading file..."):
                    try:
                        report = load_products(uploaded, filename=uploaded.name)
                    except IngestionError as e:
                        st.error(f"Could not load file: {e}")
                    else:
                        st.session_state.products = report.products
                        st.session_state.ingest_warnings = report.warnings
                        st.success(f"Loaded {len(report.products)} products from {uploaded.name}")

            for warning in st.session_state.ingest_warnings:
                st.warning(warning)

        st.download_button(
            "📄 Download Sample Template",
            data=sample_template_bytes(),
            file_name="렌탈계산기_샘플양식.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )

    with col2:
        st.subheader("Add Single Product")

        with st.form("single_product", clear_on_submit=True):
            product_name = st.text_input("Product Name")
            model_name = st.text_input("Model Name")
            price_text = st.text_input("One-time Price", placeholder="1,200,000")

            if st.form_submit_button("➕ Add Product", type="primary"):
                try:
                    product = build_product(product_name, model_name, price_text)
                except IngestionError as e:
                    st.error(str(e))
                else:
                    st.session_state.products = st.session_state.products + [product]
                    st.success(f"Added {product.product_name} ({product.model_name})")

    if st.session_state.products:
        st.markdown("### 📝 Current Products")
        st.dataframe(
            pd.DataFrame([{
                'Product': p.product_name,
                'Model': p.model_name,
                'Price': format_won(p.price),
            } for p in st.session_state.products]),
            use_container_width=True,
            hide_index=True
        )


# ============================================================================
# TAB 2: SETTINGS
# ============================================================================
with tab2:
    st.subheader("⚙️ Rate Settings")

    error = st.session_state.pop('config_error', None)
    if error:
        st.error(f"Rejected: {error}")

    with st.container(border=True):
        st.text_input(
            "Supply Rate (%)",
            key="supply_rate",
            on_change=apply_edit,
            args=("supply_rate", "with_supply_rate"),
        )

    st.markdown("##### Per-period Rates")
    columns = st.columns(len(config.periods))
    for col, period in zip(columns, config.periods):
        with col:
            with st.container(border=True):
                st.markdown(f"**{period_label(period)}**")
                st.text_input(
                    "Discount (%)",
                    key=f"discount_{period}",
                    on_change=apply_edit,
                    args=(f"discount_{period}", "with_discount_rate", period),
                )
                st.text_input(
                    "Fee (%)",
                    key=f"fee_{period}",
                    on_change=apply_edit,
                    args=(f"fee_{period}", "with_fee_rate", period),
                )

    st.selectbox(
        "Selected Rental Period",
        options=list(config.periods),
        format_func=period_label,
        key="selected_period",
        on_change=select_period,
    )


# ============================================================================
# TAB 3: RESULTS
# ============================================================================
with tab3:
    if not st.session_state.products:
        st.info("📭 No products loaded")
        st.caption("Upload a file or add a product to see rental pricing.")
    else:
        # Recompute on every render from the current products and config
        try:
            result = engine.compute_all(st.session_state.products, config)
        except ConfigurationError as e:
            st.error(f"Configuration Error: {e}")
            st.stop()

        for warning in result.warnings:
            st.warning(warning)

        period = config.effective_period
        rows = [p.selected for p in result.products]

        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Products", len(result.products))
        m2.metric("Period", period_label(period))
        m3.metric("Total Final Rental", format_won(sum(b.final_total_rental_fee for b in rows)))
        m4.metric("Total Supply Value", format_won(sum(b.supply_value for b in rows)))

        st.dataframe(
            pd.DataFrame([{
                'Product': p.product_name,
                'Model': p.model_name,
                'Price': format_won(p.price),
                'Supply Price': format_won(p.supply_price),
                'Monthly (Final)': format_won(p.selected.final_monthly_rental_fee),
                'Total (Final)': format_won(p.selected.final_total_rental_fee),
                'Company Fee': format_won(p.selected.rental_company_profit),
                'Supply Value': format_won(p.selected.supply_value),
            } for p in result.products]),
            use_container_width=True,
            hide_index=True
        )

        btn_col1, btn_col2 = st.columns(2)
        with btn_col1:
            st.download_button(
                "📥 Excel",
                data=export_bytes(result.products, period, fmt="xlsx"),
                file_name=export_filename(period, fmt="xlsx"),
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                use_container_width=True
            )
        with btn_col2:
            st.download_button(
                "📥 CSV",
                data=export_bytes(result.products, period, fmt="csv"),
                file_name=export_filename(period, fmt="csv"),
                mime="text/csv",
                use_container_width=True
            )

        with st.expander("📊 View All Periods"):
            st.dataframe(detail_frame(result.products), use_container_width=True, hide_index=True)
