import streamlit as st

from cardbasket.config import load_config, load_credentials, logger, setup_logging
from cardbasket.errors import BasketError, ConfigurationError
from cardbasket.exporter import solution_rows, solution_to_frame
from cardbasket.pipeline import build_providers, run_pipeline
from cardbasket.policy import OptimizationConfig, ShippingPolicy, UnsatisfiablePolicy

import pandas as pd

SHIPPING_OPTIONS = [p.value for p in ShippingPolicy]
UNSATISFIABLE_OPTIONS = [p.value for p in UnsatisfiablePolicy]


def policy_indices(optimization_config):
    """Selectbox positions for an already validated OptimizationConfig."""
    return (
        SHIPPING_OPTIONS.index(optimization_config.shipping_policy.value),
        UNSATISFIABLE_OPTIONS.index(optimization_config.unsatisfiable_policy.value),
    )


# Streamlit App
def main():
    st.set_page_config(page_title="Card Basket Optimiser", layout="wide")
    st.title("Cheapest Card Basket")

    # Initialize session state variables
    if 'pipeline_result' not in st.session_state:
        st.session_state.pipeline_result = None

    config_path = st.sidebar.text_input("Config file", value="config.yaml")
    try:
        config = load_config(config_path)
        defaults = OptimizationConfig.from_dict(config["optimization"])
    except ConfigurationError as e:
        st.error(str(e))
        logger.error(f"Error loading configuration: {e}")
        return
    setup_logging(config["logging"]["level"], config["logging"].get("file"))

    shipping_index, unsatisfiable_index = policy_indices(defaults)
    opt = config["optimization"]
    opt["shipping_policy"] = st.sidebar.selectbox(
        "Shipping policy", SHIPPING_OPTIONS, index=shipping_index
    )
    opt["unsatisfiable_policy"] = st.sidebar.selectbox(
        "Cards without listings", UNSATISFIABLE_OPTIONS, index=unsatisfiable_index
    )

    sets = config["catalog"].get("sets") or []
    st.sidebar.markdown(f"**{len(sets)} set(s)**, "
                        f"{sum(len(s.get('card_numbers', [])) for s in sets)} card number(s) requested")

    if st.sidebar.button("Run optimisation"):
        try:
            optimization_config = OptimizationConfig.from_dict(opt)
            catalog, offer_provider = build_providers(config, load_credentials())
            with st.spinner("Fetching listings and solving..."):
                st.session_state.pipeline_result = run_pipeline(
                    config, catalog, offer_provider, optimization_config=optimization_config
                )
        except BasketError as e:
            st.error(str(e))
            logger.error(f"Error running optimisation: {e}")
            return

    result = st.session_state.pipeline_result
    if result is None:
        st.info("Choose the options in the sidebar and press **Run optimisation**.")
        return

    col1, col2 = st.columns(2)
    col1.metric("Cards", len(result.items))
    col2.metric("Listings fetched", len(result.offers))

    outcome = result.outcome
    if outcome is None or not outcome.solved:
        st.warning("No feasible/optimal solution found.")
        return

    solution = outcome.solution
    col1, col2, col3 = st.columns(3)
    col1.metric("Total combined cost", f"£{solution.total_cost:.2f}")
    col2.metric("Sellers", len(solution.activated_vendors))
    col3.metric("Shipping paid", f"£{solution.total_cost - solution.item_total:.2f}")

    st.subheader("Chosen listings")
    st.dataframe(solution_to_frame(solution), use_container_width=True)

    if outcome.unsatisfiable_items:
        st.subheader("Cards with no listings")
        st.write(", ".join(item.label for item in outcome.unsatisfiable_items))

    csv_data = pd.DataFrame(solution_rows(solution)).to_csv(index=False).encode("utf-8")
    st.download_button("Download CSV", data=csv_data, file_name="chosen_listings.csv", mime="text/csv")


if __name__ == "__main__":
    main()
