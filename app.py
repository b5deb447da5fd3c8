"""
Streamlit Web Application for the MEEET Tokenomics Dashboard

This application loads the daily output of the MEEET user simulation and
shows how NFT revenue is split between buyback, user rewards and company
profit, what that does to a modeled token price, and how the user base and
its lifetime value develop. Parameters are adjusted in the sidebar and the
whole model is recomputed on every change.
"""

import io
import logging

import streamlit as st
import altair as alt
import pandas as pd

from meeet_sim import (
    DAYS_IN_QUARTER,
    SimulationError,
    SimulationParameters,
    SimulationResult,
    summarize,
)
from data_loader import DEFAULT_RESULTS_PATH, load_parameters, load_records, parameters_to_yaml

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Configure Streamlit page
st.set_page_config(
    page_title="MEEET Tokenomics Dashboard",
    page_icon=None,
    layout="wide",
    initial_sidebar_state="expanded"
)

REVENUE_DISTRIBUTION_COLORS = ['#00C49F', '#FFBB28', '#FF8042']


def format_number(value: float) -> str:
    return f"{value:,.0f}"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def format_token_price(value: float) -> str:
    return f"{value:.6f}"


@st.cache_data(show_spinner=False)
def load_uploaded_records(data: bytes):
    """Parse an uploaded CSV export (cached by file content)"""
    return load_records(io.BytesIO(data))


@st.cache_data(show_spinner=False)
def run_model(records, params: SimulationParameters) -> SimulationResult:
    """Full model run, cached per (records, parameters)"""
    return summarize(records, params)


def create_sidebar_config(defaults: SimulationParameters) -> SimulationParameters:
    """
    Create sidebar configuration interface with organized parameter groups

    Args:
        defaults: Parameter set used for the initial widget values

    Returns:
        SimulationParameters built from the widget values
    """
    st.sidebar.title("Simulation Configuration")
    st.sidebar.markdown("Adjust parameters to explore different tokenomics scenarios")

    # REVENUE DISTRIBUTION
    with st.sidebar.expander("Revenue Distribution", expanded=True):
        st.markdown("**NFT revenue split between buyback, users and company**")

        buyback_percentage = st.slider(
            "Buyback (%)",
            min_value=0, max_value=100, value=int(defaults.buyback_percentage), step=1,
            help="Share of NFT revenue used to buy tokens back from the market."
        )
        # Rewards can only take what buyback leaves
        remaining = 100 - buyback_percentage
        if remaining > 0:
            user_rewards_percentage = st.slider(
                "User Rewards (%)",
                min_value=0, max_value=remaining,
                value=min(int(defaults.user_rewards_percentage), remaining), step=1,
                help="Share of NFT revenue distributed to users as token rewards."
            )
        else:
            user_rewards_percentage = 0
            st.caption("User Rewards: 0% (buyback takes all revenue)")
        st.caption(f"Company gross profit: {100 - buyback_percentage - user_rewards_percentage}% of revenue")

    # PRICE IMPACT
    with st.sidebar.expander("Token Price Factors", expanded=False):
        buyback_price_impact = st.number_input(
            "Buyback Price Impact (%)",
            min_value=0.0, max_value=100.0, value=float(defaults.buyback_price_impact), step=1.0,
            help="Price move caused by a buyback equal to the available liquidity (1:1 ratio)."
        )
        reward_distribution_impact = st.number_input(
            "Reward Distribution Impact (%)",
            min_value=0.0, max_value=100.0, value=float(defaults.reward_distribution_impact), step=1.0,
            help="Negative price pressure from distributing reward tokens, relative to circulating supply."
        )
        market_sentiment = st.slider(
            "Market Sentiment",
            min_value=-10, max_value=10, value=int(defaults.market_sentiment), step=1,
            help="From -10 (bearish) to +10 (bullish); each point moves the price 1% per quarter."
        )

    # COSTS
    with st.sidebar.expander("Costs", expanded=False):
        operational_costs_base = st.number_input(
            "Base Operational Costs (USDT/quarter)",
            min_value=0.0, value=float(defaults.operational_costs_base), step=1000.0
        )
        operational_costs_per_user = st.number_input(
            "Cost per Active User (USDT/day)",
            min_value=0.0, value=float(defaults.operational_costs_per_user), step=0.1
        )
        marketing_percentage = st.slider(
            "Marketing (% of revenue)",
            min_value=0, max_value=100, value=int(defaults.marketing_percentage), step=1
        )

    # NFT PRICES
    with st.sidebar.expander("NFT Prices", expanded=False):
        silver_price = st.number_input("Silver NFT Price (USDT)", min_value=0.0,
                                       value=float(defaults.silver_price), step=10.0)
        gold_price = st.number_input("Gold NFT Price (USDT)", min_value=0.0,
                                     value=float(defaults.gold_price), step=100.0)
        platinum_price = st.number_input("Platinum NFT Price (USDT)", min_value=0.0,
                                         value=float(defaults.platinum_price), step=1000.0)

    # LTV
    with st.sidebar.expander("LTV & Retention", expanded=False):
        silver_user_ltv = st.number_input("Silver LTV (USDT)", min_value=0.0,
                                          value=float(defaults.silver_user_ltv), step=10.0)
        gold_user_ltv = st.number_input("Gold LTV (USDT)", min_value=0.0,
                                        value=float(defaults.gold_user_ltv), step=100.0)
        platinum_user_ltv = st.number_input("Platinum LTV (USDT)", min_value=0.0,
                                            value=float(defaults.platinum_user_ltv), step=1000.0)
        retention_rate = st.slider(
            "Retention Rate (%)",
            min_value=0, max_value=100, value=int(defaults.retention_rate), step=1,
            help="Applied uniformly to every tier's base LTV."
        )

    # TOKENOMICS
    with st.sidebar.expander("Tokenomics", expanded=False):
        total_token_supply = st.number_input(
            "Total Token Supply", min_value=1.0, value=float(defaults.total_token_supply), step=1_000_000.0
        )
        initial_reward_pool = st.number_input(
            "Initial Reward Pool", min_value=0.0, value=float(defaults.initial_reward_pool), step=1_000_000.0
        )
        initial_liquidity = st.number_input(
            "Initial Liquidity (USDT)", min_value=0.0, value=float(defaults.initial_liquidity), step=1000.0
        )

    return SimulationParameters(
        silver_price=silver_price,
        gold_price=gold_price,
        platinum_price=platinum_price,
        buyback_percentage=buyback_percentage,
        user_rewards_percentage=user_rewards_percentage,
        operational_costs_base=operational_costs_base,
        operational_costs_per_user=operational_costs_per_user,
        marketing_percentage=marketing_percentage,
        total_token_supply=total_token_supply,
        initial_reward_pool=initial_reward_pool,
        initial_liquidity=initial_liquidity,
        buyback_price_impact=buyback_price_impact,
        reward_distribution_impact=reward_distribution_impact,
        market_sentiment=market_sentiment,
        silver_user_ltv=silver_user_ltv,
        gold_user_ltv=gold_user_ltv,
        platinum_user_ltv=platinum_user_ltv,
        retention_rate=retention_rate,
    )


def revenue_distribution_frame(params: SimulationParameters, result: SimulationResult) -> pd.DataFrame:
    """Revenue split as percentages and USDT totals"""
    summary = result.summary
    return pd.DataFrame({
        'Bucket': ['Buyback', 'User Rewards', 'Company Gross Profit'],
        'Percent': [params.buyback_percentage, params.user_rewards_percentage,
                    params.company_profit_percentage],
        'USDT': [summary.buyback_amount, summary.user_rewards_amount, summary.gross_profit_amount],
    })


def show_financial_tab(params: SimulationParameters, result: SimulationResult) -> None:
    summary = result.summary
    quarterly = result.quarterly_frame()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Total NFT Revenue", f"{format_number(summary.total_nft_revenue)} USDT")
    with col2:
        st.metric("Gross Profit", f"{format_number(summary.gross_profit_amount)} USDT",
                  f"{format_percent(params.company_profit_percentage)} of revenue", delta_color="off")
    with col3:
        st.metric("Net Profit", f"{format_number(summary.net_profit)} USDT",
                  f"Margin {format_percent(summary.net_profit_margin)}", delta_color="off")
    with col4:
        st.metric("Buyback", f"{format_number(summary.buyback_amount)} USDT",
                  f"{format_percent(params.buyback_percentage)} of revenue", delta_color="off")

    distribution = revenue_distribution_frame(params, result)
    color_scale = alt.Scale(domain=list(distribution['Bucket']), range=REVENUE_DISTRIBUTION_COLORS)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Revenue Distribution (%)")
        pie = alt.Chart(distribution).mark_arc().encode(
            theta=alt.Theta('Percent:Q'),
            color=alt.Color('Bucket:N', scale=color_scale),
            tooltip=[alt.Tooltip('Bucket:N'), alt.Tooltip('Percent:Q', format='.1f')]
        ).properties(height=300)
        st.altair_chart(pie, use_container_width=True)
    with col2:
        st.subheader("Revenue Distribution (USDT)")
        pie = alt.Chart(distribution).mark_arc().encode(
            theta=alt.Theta('USDT:Q'),
            color=alt.Color('Bucket:N', scale=color_scale),
            tooltip=[alt.Tooltip('Bucket:N'), alt.Tooltip('USDT:Q', format=',.0f')]
        ).properties(height=300)
        st.altair_chart(pie, use_container_width=True)

    st.subheader("Quarterly Revenue and Profit")
    profit_df = quarterly[['quarter', 'nft_revenue', 'gross_profit_amount', 'net_profit']].rename(columns={
        'nft_revenue': 'NFT Revenue',
        'gross_profit_amount': 'Gross Profit',
        'net_profit': 'Net Profit',
    })
    profit_melted = profit_df.melt(id_vars=['quarter'], var_name='Metric', value_name='USDT')
    profit_chart = alt.Chart(profit_melted).mark_line(point=True).encode(
        x=alt.X('quarter:O', title='Quarter'),
        y=alt.Y('USDT:Q', title='USDT'),
        color=alt.Color('Metric:N'),
        tooltip=[alt.Tooltip('quarter:O', title='Quarter'), alt.Tooltip('Metric:N'),
                 alt.Tooltip('USDT:Q', format=',.0f')]
    ).properties(height=350).interactive()
    st.altair_chart(profit_chart, use_container_width=True)

    st.subheader("Quarterly Costs")
    costs_df = quarterly[['quarter', 'marketing_costs', 'operational_costs']].rename(columns={
        'marketing_costs': 'Marketing',
        'operational_costs': 'Operational',
    }).melt(id_vars=['quarter'], var_name='Cost', value_name='USDT')
    costs_chart = alt.Chart(costs_df).mark_bar().encode(
        x=alt.X('quarter:O', title='Quarter'),
        y=alt.Y('USDT:Q', stack='zero'),
        color=alt.Color('Cost:N'),
        tooltip=[alt.Tooltip('Cost:N'), alt.Tooltip('USDT:Q', format=',.0f')]
    ).properties(height=300)
    st.altair_chart(costs_chart, use_container_width=True)

    st.subheader("Quarterly Financials")
    table = quarterly[['quarter', 'nft_revenue', 'buyback_amount', 'user_rewards_amount',
                       'gross_profit_amount', 'marketing_costs', 'operational_costs',
                       'net_profit', 'net_profit_margin']].copy()
    table['quarter'] = 'Q' + table['quarter'].astype(str)
    totals = {
        'quarter': 'TOTAL',
        'nft_revenue': summary.total_nft_revenue,
        'buyback_amount': summary.buyback_amount,
        'user_rewards_amount': summary.user_rewards_amount,
        'gross_profit_amount': summary.gross_profit_amount,
        'marketing_costs': summary.marketing_costs,
        'operational_costs': summary.operational_costs,
        'net_profit': summary.net_profit,
        'net_profit_margin': summary.net_profit_margin,
    }
    table = pd.concat([table, pd.DataFrame([totals])], ignore_index=True)
    st.dataframe(table, use_container_width=True, hide_index=True)


def show_tokenomics_tab(result: SimulationResult) -> None:
    summary = result.summary
    quarterly = result.quarterly_frame()
    weekly = result.daily_frame(every=7)

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Token Price", f"{format_token_price(summary.last_token_price)} USDT",
                  format_percent(summary.token_price_change))
    with col2:
        st.metric("Tokens Bought Back", format_number(summary.total_tokens_bought_back),
                  f"{format_number(summary.buyback_amount)} USDT", delta_color="off")
    with col3:
        st.metric("Market Cap", f"{format_number(summary.estimated_market_cap)} USDT",
                  f"Circulating {format_number(summary.final_circulating_supply)}", delta_color="off")
    with col4:
        st.metric("Modeled Price", f"{format_token_price(summary.modeled_token_price)} USDT")

    st.subheader("Token Price: Actual vs Modeled")
    st.caption(f"""
    Weekly samples of the daily series. The modeled price restarts from the observed price
    at the start of every {DAYS_IN_QUARTER}-day quarter and then compounds that quarter's
    buyback, distribution and sentiment effects day by day.
    """)
    price_melted = weekly[['day', 'actual_token_price', 'modeled_token_price']].rename(columns={
        'actual_token_price': 'Actual',
        'modeled_token_price': 'Modeled',
    }).melt(id_vars=['day'], var_name='Series', value_name='Price')
    price_chart = alt.Chart(price_melted).mark_line().encode(
        x=alt.X('day:Q', title='Day'),
        y=alt.Y('Price:Q', title='USDT'),
        color=alt.Color('Series:N', scale=alt.Scale(domain=['Actual', 'Modeled'],
                                                    range=['#1f77b4', '#ff7f0e'])),
        tooltip=[alt.Tooltip('day:Q', title='Day'), alt.Tooltip('Series:N'),
                 alt.Tooltip('Price:Q', format='.6f')]
    ).properties(height=350).interactive()
    st.altair_chart(price_chart, use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Tokens Bought Back vs Distributed")
        flows = quarterly[['quarter', 'tokens_bought_back', 'tokens_distributed']].rename(columns={
            'tokens_bought_back': 'Bought Back',
            'tokens_distributed': 'Distributed',
        }).melt(id_vars=['quarter'], var_name='Flow', value_name='Tokens')
        flows_chart = alt.Chart(flows).mark_bar().encode(
            x=alt.X('quarter:O', title='Quarter'),
            xOffset='Flow:N',
            y=alt.Y('Tokens:Q'),
            color=alt.Color('Flow:N'),
            tooltip=[alt.Tooltip('Flow:N'), alt.Tooltip('Tokens:Q', format=',.0f')]
        ).properties(height=300)
        st.altair_chart(flows_chart, use_container_width=True)
    with col2:
        st.subheader("Price Effect Coefficients")
        effects = quarterly[['quarter', 'buyback_price_effect', 'distribution_price_effect',
                             'sentiment_effect']].rename(columns={
            'buyback_price_effect': 'Buyback',
            'distribution_price_effect': 'Distribution',
            'sentiment_effect': 'Sentiment',
        }).melt(id_vars=['quarter'], var_name='Effect', value_name='Coefficient')
        effects_chart = alt.Chart(effects).mark_bar().encode(
            x=alt.X('quarter:O', title='Quarter'),
            y=alt.Y('Coefficient:Q', stack='zero'),
            color=alt.Color('Effect:N'),
            tooltip=[alt.Tooltip('Effect:N'), alt.Tooltip('Coefficient:Q', format='.4f')]
        ).properties(height=300)
        st.altair_chart(effects_chart, use_container_width=True)

    st.subheader("Reward Pool and Circulating Supply")
    supply = weekly[['day', 'reward_pool', 'circulating_supply']].rename(columns={
        'reward_pool': 'Reward Pool',
        'circulating_supply': 'Circulating',
    })
    supply_melted = supply.melt(id_vars=['day'], var_name='Type', value_name='Tokens')
    supply_melted['Tokens (Millions)'] = supply_melted['Tokens'] / 1e6
    supply_chart = alt.Chart(supply_melted).mark_area(opacity=0.7, line={'strokeWidth': 2}).encode(
        x=alt.X('day:Q', title='Day'),
        y=alt.Y('Tokens (Millions):Q', stack='zero'),
        color=alt.Color('Type:N'),
        tooltip=[alt.Tooltip('day:Q', title='Day'), alt.Tooltip('Type:N'),
                 alt.Tooltip('Tokens (Millions):Q', format='.2f')]
    ).properties(height=300).interactive()
    st.altair_chart(supply_chart, use_container_width=True)

    st.subheader("Quarterly Token Metrics")
    table = quarterly[['quarter', 'actual_token_price', 'modeled_token_price', 'tokens_bought_back',
                       'tokens_distributed', 'circulating_supply', 'market_cap',
                       'estimated_liquidity']].copy()
    table['quarter'] = 'Q' + table['quarter'].astype(str)
    st.dataframe(table, use_container_width=True, hide_index=True)


def show_users_tab(params: SimulationParameters, result: SimulationResult) -> None:
    summary = result.summary
    quarterly = result.quarterly_frame()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("NFT Holders", format_number(summary.final_users),
                  format_percent(summary.user_growth))
    with col2:
        st.metric("Avg User LTV", f"{format_number(summary.avg_ltv)} USDT",
                  f"Retention {params.retention_rate:.0f}%", delta_color="off")
    with col3:
        st.metric("Total User Value", f"{format_number(summary.total_user_ltv)} USDT")
    with col4:
        st.metric("Meetings per Day", format_number(summary.avg_meetings_per_day))

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("NFT Holders by Tier")
        tiers = quarterly[['quarter', 'silver_nfts', 'gold_nfts', 'platinum_nfts']].rename(columns={
            'silver_nfts': 'Silver',
            'gold_nfts': 'Gold',
            'platinum_nfts': 'Platinum',
        }).melt(id_vars=['quarter'], var_name='Tier', value_name='NFTs')
        tiers_chart = alt.Chart(tiers).mark_area(opacity=0.7).encode(
            x=alt.X('quarter:O', title='Quarter'),
            y=alt.Y('NFTs:Q', stack='zero'),
            color=alt.Color('Tier:N', scale=alt.Scale(domain=['Silver', 'Gold', 'Platinum'],
                                                      range=['#a0a0a0', '#f2c14e', '#5b8fb9'])),
            tooltip=[alt.Tooltip('Tier:N'), alt.Tooltip('NFTs:Q', format=',.0f')]
        ).properties(height=300)
        st.altair_chart(tiers_chart, use_container_width=True)
    with col2:
        st.subheader("Meetings per Day")
        meetings_chart = alt.Chart(quarterly).mark_bar().encode(
            x=alt.X('quarter:O', title='Quarter'),
            y=alt.Y('meetings_per_day:Q', title='Meetings / day'),
            tooltip=[alt.Tooltip('quarter:O', title='Quarter'),
                     alt.Tooltip('meetings_per_day:Q', format=',.1f')]
        ).properties(height=300)
        st.altair_chart(meetings_chart, use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Total User LTV")
        ltv_chart = alt.Chart(quarterly).mark_line(point=True).encode(
            x=alt.X('quarter:O', title='Quarter'),
            y=alt.Y('total_user_ltv:Q', title='USDT'),
            tooltip=[alt.Tooltip('total_user_ltv:Q', format=',.0f')]
        ).properties(height=300)
        st.altair_chart(ltv_chart, use_container_width=True)
    with col2:
        st.subheader("Active vs Total NFTs")
        active = quarterly[['quarter', 'total_nfts', 'active_total_nfts']].rename(columns={
            'total_nfts': 'Total',
            'active_total_nfts': 'Active',
        }).melt(id_vars=['quarter'], var_name='Holders', value_name='NFTs')
        active_chart = alt.Chart(active).mark_line(point=True).encode(
            x=alt.X('quarter:O', title='Quarter'),
            y=alt.Y('NFTs:Q'),
            color=alt.Color('Holders:N'),
            tooltip=[alt.Tooltip('Holders:N'), alt.Tooltip('NFTs:Q', format=',.0f')]
        ).properties(height=300)
        st.altair_chart(active_chart, use_container_width=True)

    st.subheader("Quarterly User Metrics")
    table = quarterly[['quarter', 'total_nfts', 'active_total_nfts', 'meetings',
                       'meetings_per_day', 'total_user_ltv']].copy()
    table['active_share'] = (table['active_total_nfts'] / table['total_nfts'].where(table['total_nfts'] > 0)) * 100
    table['quarter'] = 'Q' + table['quarter'].astype(str)
    st.dataframe(table, use_container_width=True, hide_index=True)


def main():
    """Main Streamlit application"""

    # Header
    st.title("MEEET Tokenomics Dashboard")
    st.markdown("""
    **Revenue distribution, buyback impact and user value for the MEEET NFT economy**

    Based on the daily output of the MEEET user simulation. Adjust parameters in the sidebar;
    every change recomputes all quarters, the modeled price and the summary.
    """)

    try:
        defaults = load_parameters()
    except SimulationError as e:
        st.sidebar.warning(f"Ignoring invalid parameter file: {e}")
        defaults = SimulationParameters()

    uploaded = st.sidebar.file_uploader("Simulation results (CSV)", type=["csv"])

    try:
        params = create_sidebar_config(defaults)
    except SimulationError as e:
        st.error(f"Invalid parameters: {e}")
        return

    st.sidebar.download_button(
        "Download Parameters (YAML)",
        data=parameters_to_yaml(params),
        file_name="parameters.yaml",
        mime="text/yaml",
        use_container_width=True
    )

    try:
        if uploaded is not None:
            records = load_uploaded_records(uploaded.getvalue())
        elif DEFAULT_RESULTS_PATH.exists():
            records = load_records(DEFAULT_RESULTS_PATH)
        else:
            st.info(f"Upload the simulation results CSV in the sidebar (or place {DEFAULT_RESULTS_PATH.name} next to the app)")
            return
        result = run_model(records, params)
    except SimulationError as e:
        logger.error("Model run failed: %s", e)
        st.error(f"Could not process the simulation data: {e}")
        return

    tab_finance, tab_tokens, tab_users = st.tabs([
        "Finance & Revenue Distribution",
        "Tokenomics & Price",
        "Users & LTV",
    ])
    with tab_finance:
        show_financial_tab(params, result)
    with tab_tokens:
        show_tokenomics_tab(result)
    with tab_users:
        show_users_tab(params, result)

    # Show configuration summary
    with st.expander("Current Configuration Summary", expanded=False):
        col1, col2, col3 = st.columns(3)

        with col1:
            st.markdown("**Revenue Split**")
            st.write(f"Buyback: {params.buyback_percentage:.0f}%")
            st.write(f"User Rewards: {params.user_rewards_percentage:.0f}%")
            st.write(f"Company Profit: {params.company_profit_percentage:.0f}%")
            st.write(f"Marketing: {params.marketing_percentage:.0f}% of revenue")

        with col2:
            st.markdown("**Price Factors**")
            st.write(f"Buyback Impact: {params.buyback_price_impact:.1f}%")
            st.write(f"Distribution Impact: {params.reward_distribution_impact:.1f}%")
            sign = '+' if params.market_sentiment > 0 else ''
            st.write(f"Market Sentiment: {sign}{params.market_sentiment:.0f}")

        with col3:
            st.markdown("**Horizon**")
            st.write(f"Days: {len(result.daily)}")
            st.write(f"Quarters: {len(result.quarterly)}")
            st.write(f"Total Supply: {params.total_token_supply/1e9:.2f}B tokens")

    st.caption("""
    EEE tokens and MEEET NFTs are utility digital assets and are not intended as investment instruments.
    """)


if __name__ == "__main__":
    main()
