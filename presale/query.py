"""
query.py - Read-only projections of presale state
"""

from __future__ import annotations
from itertools import islice
from typing import List, Optional

from .core import PresaleView, Config, SaleInfo, UserInfo
from .accounts import clamp_limit


def query_config(view: PresaleView) -> Config:
    return view.get_config()


def query_sale_info(view: PresaleView) -> SaleInfo:
    return view.get_sale_info()


def query_user_info(view: PresaleView, address: str) -> UserInfo:
    """
    Return a buyer's cumulative record.

    Buyers that never purchased get a zero-valued record keyed to their
    address.

    Raises:
        InvalidAddress: If address fails validation
    """
    view.validate_address(address)
    user_info = view.get_user_info(address)
    if user_info is None:
        return UserInfo.zero(address)
    return user_info


def query_user_infos(
    view: PresaleView,
    start_after: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[UserInfo]:
    """
    List buyer records in ascending address order.

    Args:
        view: Read-only presale access
        start_after: Exclusive cursor; pass the last address of the previous page
        limit: Page size (default 10, capped at 30)
    """
    return list(islice(view.iter_user_infos(start_after), clamp_limit(limit)))
