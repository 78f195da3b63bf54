# atlanta_map/chart_generator.py - Altair chart generation utilities
import math

import altair as alt
import pandas as pd

from .color_scale import PRICE_DOMAIN, color_for, price_axis
from .config import YEAR_MAX, YEAR_MIN
from .spatial_query import format_currency

# The fill is driven by avgprice, so the legend names the average (not the median)
LEGEND_TITLE = "Average Sale Price ($)"


def _year_axis(min_year=YEAR_MIN, max_year=YEAR_MAX):
    return alt.X('year:Q',
                 title='Year',
                 scale=alt.Scale(domain=[min_year, max_year]),
                 axis=alt.Axis(format='d', tickCount=max_year - min_year + 1))


def create_price_trend_chart(series, min_year=YEAR_MIN, max_year=YEAR_MAX):
    """
    Create a line chart of average and median sale price for one neighborhood.

    Args:
        series: NeighborhoodSeries for the neighborhood
        min_year: Minimum year to display
        max_year: Maximum year to display

    Returns:
        Altair chart object
    """
    frame = series.to_frame()

    # One row per (year, measure) so both lines share a color legend
    chart_data = frame.melt(
        id_vars=['year'],
        value_vars=['avg_price', 'median_price'],
        var_name='measure',
        value_name='price'
    )
    chart_data['measure'] = chart_data['measure'].map({
        'avg_price': 'Avg Price',
        'median_price': 'Median Price',
    })

    base = alt.Chart(chart_data).encode(
        x=_year_axis(min_year, max_year),
        y=alt.Y('price:Q', title='Sale Price ($)', axis=alt.Axis(format='$,.0f')),
        color=alt.Color('measure:N',
                        title=None,
                        scale=alt.Scale(domain=['Avg Price', 'Median Price'],
                                        range=['#8884d8', '#82ca9d']),
                        legend=alt.Legend(orient='bottom')),
        tooltip=[
            alt.Tooltip('year:Q', title='Year', format='d'),
            alt.Tooltip('measure:N', title='Measure'),
            alt.Tooltip('price:Q', title='Price', format='$,.0f')
        ]
    )

    chart = (base.mark_line(strokeWidth=2) + base.mark_circle(size=50)).properties(
        title=alt.Title(text=f'Price Trends - {series.name}', fontSize=16, anchor='start'),
        width='container',
        height=300
    ).configure_axis(
        grid=True,
        gridOpacity=0.3,
        gridDash=[3, 3],
        labelFontSize=11,
        titleFontSize=13
    )

    return chart


def _series_color_scale(colors):
    names = list(colors)
    return alt.Scale(domain=names, range=[colors[n] for n in names])


def create_comparison_price_chart(price_df, colors, min_year=YEAR_MIN, max_year=YEAR_MAX):
    """
    Create the average-price comparison chart.

    Years without sales are absent from price_df, so each line only connects
    the years the neighborhood actually has data for.

    Args:
        price_df: DataFrame with columns year, neighborhood, avg_price
        colors: Mapping of neighborhood -> line color (selection order)

    Returns:
        Altair chart object
    """
    chart = alt.Chart(price_df).mark_line(strokeWidth=2).encode(
        x=_year_axis(min_year, max_year),
        y=alt.Y('avg_price:Q', title='Average Price ($)', axis=alt.Axis(format='$,.0f')),
        color=alt.Color('neighborhood:N',
                        title=None,
                        scale=_series_color_scale(colors),
                        legend=alt.Legend(orient='bottom')),
        tooltip=[
            alt.Tooltip('neighborhood:N', title='Neighborhood'),
            alt.Tooltip('year:Q', title='Year', format='d'),
            alt.Tooltip('avg_price:Q', title='Avg Price', format='$,.0f')
        ]
    ).properties(
        title=alt.Title(text='Average Price', fontSize=16, anchor='start'),
        width='container',
        height=350
    )
    return chart


def create_comparison_volume_chart(volume_df, colors, min_year=YEAR_MIN, max_year=YEAR_MAX):
    """
    Create the sales-volume comparison chart (zero-filled over every year).

    Args:
        volume_df: DataFrame with columns year, neighborhood, parcel_count
        colors: Mapping of neighborhood -> line color (selection order)

    Returns:
        Altair chart object
    """
    chart = alt.Chart(volume_df).mark_line(strokeWidth=2).encode(
        x=_year_axis(min_year, max_year),
        y=alt.Y('parcel_count:Q', title='Parcels Sold', scale=alt.Scale(zero=True)),
        color=alt.Color('neighborhood:N',
                        title=None,
                        scale=_series_color_scale(colors),
                        legend=alt.Legend(orient='bottom')),
        tooltip=[
            alt.Tooltip('neighborhood:N', title='Neighborhood'),
            alt.Tooltip('year:Q', title='Year', format='d'),
            alt.Tooltip('parcel_count:Q', title='Sales Volume', format=',d')
        ]
    ).properties(
        title=alt.Title(text='Sales Volume', fontSize=16, anchor='start'),
        width='container',
        height=350
    )
    return chart


def legend_frame(steps=120):
    """Gradient cells across the log price domain, colored with the fill ramp."""
    low, high = (math.log10(p) for p in PRICE_DOMAIN)
    width = (high - low) / steps
    rows = []
    for i in range(steps):
        start = low + i * width
        rows.append({
            'price_start': 10 ** start,
            'price_end': 10 ** (start + width),
            'color': color_for(start + width / 2),
        })
    return pd.DataFrame(rows)


def create_legend_chart(width=500):
    """
    Create the color legend: the fill ramp over a log-scaled price axis.

    Returns:
        Altair chart object
    """
    scale = alt.Scale(type='log', domain=list(PRICE_DOMAIN), nice=False)
    ticks = pd.DataFrame([{'price': t.price, 'label': t.label} for t in price_axis()])

    gradient = alt.Chart(legend_frame()).mark_rect().encode(
        x=alt.X('price_start:Q', scale=scale, axis=None),
        x2='price_end:Q',
        color=alt.Color('color:N', scale=None, legend=None)
    )

    tick_marks = alt.Chart(ticks).mark_tick(color='#333', thickness=1, size=8, yOffset=18).encode(
        x=alt.X('price:Q', scale=scale, axis=None)
    )

    labels = alt.Chart(ticks).mark_text(dy=30, fontSize=12, color='#333').encode(
        x=alt.X('price:Q', scale=scale, axis=None),
        text='label:N'
    )

    chart = (gradient + tick_marks + labels).properties(
        title=alt.Title(text=LEGEND_TITLE, fontSize=14, anchor='middle'),
        width=width,
        height=30
    ).configure_view(
        strokeWidth=0
    )
    return chart


def yearly_table(series):
    """Display table for the data sheet: Year, Avg Price, Median Price, Sales Volume."""
    frame = series.to_frame()
    return pd.DataFrame({
        'Year': frame['year'].astype(int).astype(str),
        'Avg Price': frame['avg_price'].map(format_currency),
        'Median Price': frame['median_price'].map(format_currency),
        'Sales Volume': frame['parcel_count'].astype(int),
    })
