"""Search URLs for the site's round-trip flow.

Outbound stages open the first results page; inbound stages open the next-journey page for the
outbound offer picked earlier, referenced by its product and policy ids.
"""
from urllib.parse import urlencode

from ..search.tasks import StageTask


def outbound_url(host: str, dcity: str, acity: str, ddate: str, rdate: str,
                 cabin_class: str = 'y', quantity: int = 1) -> str:
    params = {
        'dcity': dcity.lower(),
        'acity': acity.lower(),
        'ddate': ddate,
        'rdate': rdate,
        'triptype': 'rt',
        'class': cabin_class,
        'lowpricesource': 'searchform',
        'quantity': str(quantity),
        'searchboxarg': 't',
        'nonstoponly': 'off',
        'sort': 'price',
    }
    return f"https://{host}/flights/showfarefirst?{urlencode(params)}"


def inbound_url(host: str, dcity: str, acity: str, ddate: str, rdate: str, product_id: str, policy_id: str,
                cabin_class: str = 'Y', quantity: int = 1, locale: str = 'zh-TW', currency: str = 'TWD') -> str:
    params = {
        'pagesource': 'list',
        'triptype': 'RT',
        'class': cabin_class,
        'quantity': str(quantity),
        'childqty': '0',
        'babyqty': '0',
        'jumptype': 'GoToNextJournay',
        'dcity': dcity.lower(),
        'acity': acity.lower(),
        'ddate': ddate,
        'rdate': rdate,
        'currentseqno': '2',
        'criteriaToken': product_id,
        'shoppingid': policy_id,
        'groupKey': policy_id,
        'locale': locale,
        'curr': currency,
    }
    return f"https://{host}/flights/ShowFareNext?{urlencode(params)}"


def build_task_url(task: StageTask, host: str, locale: str = 'zh-TW', currency: str = 'TWD') -> str:
    dcity, acity = task.search_pair
    ctx = task.context
    ddate = ctx.outbound_date.isoformat()
    rdate = ctx.inbound_date.isoformat()
    cabin = ctx.cabin_class.site_code
    offer = task.priced_offer
    if offer is None:
        return outbound_url(host, dcity, acity, ddate, rdate, cabin_class=cabin, quantity=ctx.passengers)
    return inbound_url(
        host, dcity, acity, ddate, rdate,
        product_id=offer.product_id,
        policy_id=offer.policy_id,
        cabin_class=cabin.upper(),
        quantity=ctx.passengers,
        locale=locale,
        currency=currency,
    )
