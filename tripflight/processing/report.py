from collections import defaultdict
from pathlib import Path

from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..models import RoutePattern, RouteResult

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / 'templates'


def _format_duration(minutes: int) -> str:
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest:02d}m"


def _format_price(price: float) -> str:
    return f"{price:,.0f}"


def _format_time(iso_time: str) -> str:
    # '2025-03-01T08:05:00+08:00' / '2025-03-01 08:05:00' -> '03-01 08:05'
    return iso_time.replace('T', ' ')[5:16] if len(iso_time) >= 16 else iso_time


def _route_label(result: RouteResult) -> str:
    if result.pattern is RoutePattern.ALTERNATIVE:
        return f"{result.departure_city} ⇄ {result.intermediate_city} ⇄ {result.destination_city}"
    return f"{result.departure_city} ⇄ {result.destination_city}"


def group_by_period(results: list[RouteResult]) -> list[dict]:
    """Group results (already sorted by price) per travel-date window, cheapest window first."""
    grouped: dict[tuple, list[RouteResult]] = defaultdict(list)
    for result in results:
        grouped[(result.outbound_date, result.inbound_date)].append(result)

    periods = []
    for (outbound, inbound), period_results in grouped.items():
        routes = []
        for result in period_results:
            routes.append({
                'pattern': 'alternative' if result.pattern is RoutePattern.ALTERNATIVE else 'direct',
                'route': _route_label(result),
                'total_price': _format_price(result.total_price),
                'duration': _format_duration(result.total_duration_minutes),
                'legs': [
                    {
                        'flight': leg.flight_number,
                        'from': leg.departure_airport,
                        'to': leg.arrival_airport,
                        'departure': _format_time(leg.departure_time),
                        'arrival': _format_time(leg.arrival_time),
                    }
                    for leg in result.itinerary.legs
                ],
            })
        periods.append({
            'outbound_date': outbound.strftime("%Y-%m-%d (%A)"),
            'inbound_date': inbound.strftime("%Y-%m-%d (%A)"),
            'lowest_price': period_results[0].total_price,
            'lowest_price_text': _format_price(period_results[0].total_price),
            'routes': routes,
        })
    periods.sort(key=lambda p: p['lowest_price'])
    return periods


def render_results_html(results: list[RouteResult], currency: str = 'TWD') -> str:
    env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=select_autoescape(['html', 'xml']))
    tpl = env.get_template('route_results.html.j2')
    rendered = tpl.render(periods=group_by_period(results), currency=currency, total=len(results))
    soup = BeautifulSoup(rendered, 'lxml')
    return soup.prettify()
