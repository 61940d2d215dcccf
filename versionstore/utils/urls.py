"""Edit URL handling for version snapshots."""

import re
from typing import Optional

_STATE_TOGGLE = re.compile(r"&(amp;)?state=")
_ID_PARAM = re.compile(r"&(amp;)?id=[^&]+")
_TID_PARAM = re.compile(r"(&(amp;)?)t(id=[^&]+)")
_STATE_PARAM = re.compile(r"(&(amp;)?)state=[^&]*")
_LOGIN_MODULE = re.compile(r"do=login(&|$)")
_EDIT_ALL = re.compile(r"act=(edit|override)All")
_POPUP_PARAM = re.compile(r"&(amp;)?popup=1")
_TOKEN_PARAM = re.compile(r"&(amp;)?rt=[^&]+")


def build_edit_url(template: Optional[str], record_id: int, request_url: Optional[str],
                   user_id: Optional[int] = None, request_token: Optional[str] = None) -> str:
    """Return the URL that edits the versioned record.

    An explicit template wins and gets the record id substituted for ``%s``.
    Otherwise the current request URL is normalised so that it points at the
    record's edit form:

    - a visibility toggle (``state=``) becomes ``act=edit`` on the toggled id
    - the personal data module (``do=login``) becomes the user module; the
      request token is appended when given
    - ``act=editAll`` / ``act=overrideAll`` become ``act=edit&id=<record>``
    """
    if template is not None:
        return template.replace("%s", str(record_id)) if "%s" in template else template

    url = request_url or ""

    if _STATE_TOGGLE.search(url):
        url = _ID_PARAM.sub("", url)
        url = _TID_PARAM.sub(r"\1\3", url)
        url = _STATE_PARAM.sub(r"\1act=edit", url)

    if _LOGIN_MODULE.search(url):
        url = _LOGIN_MODULE.sub(r"do=user\1", url)
        url += f"&act=edit&id={user_id or 0}"
        if request_token:
            url += f"&rt={request_token}"

    return _EDIT_ALL.sub(f"act=edit&id={record_id}", url)


def clean_audit_edit_url(url: Optional[str], request_token: Optional[str] = None) -> str:
    """Drop the popup flag and swap in the current request token."""
    if not url:
        return ""
    url = _POPUP_PARAM.sub("", url)
    replacement = f"&rt={request_token}" if request_token else ""
    return _TOKEN_PARAM.sub(lambda _m: replacement, url)
