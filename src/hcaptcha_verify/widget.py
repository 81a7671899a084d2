"""HTML and JavaScript snippets for embedding the hCaptcha widget."""

import html
import json
import re
from typing import Mapping, Optional
from urllib.parse import urlencode

from .types import CLIENT_API

# Characters stripped from a form id before it becomes part of a JS function name
_CALLBACK_UNSAFE = re.compile(r"[-='\"<>`]")


class HCaptchaWidget:
    """
    Render hCaptcha markup for a site key.

    When disabled every method degrades to inert output: no script tag,
    no external script URL and no site key in the page. ``display_submit``
    still renders a plain submit button so forms keep working.

    Example:
        >>> widget = HCaptchaWidget("10000000-ffff-ffff-ffff-000000000001")
        >>> widget.render_js(lang="de")
        '<script src="https://hcaptcha.com/1/api.js?hl=de" async defer></script>\\n'
    """

    def __init__(self, sitekey: str, enabled: bool = True):
        self.sitekey = sitekey
        self.enabled = enabled

    def display(self, attributes: Optional[Mapping[str, str]] = None) -> str:
        """
        Render the widget container.

        Args:
            attributes: Extra HTML attributes. ``class`` is merged with
                        ``h-captcha``; ``data-sitekey`` is always overwritten.

        Returns:
            ``<div>`` markup, or an empty string when disabled
        """
        if not self.enabled:
            return ""

        attrs = self._prepare_attributes(attributes)
        return f"<div{self._build_attributes(attrs)}></div>"

    def display_widget(self, attributes: Optional[Mapping[str, str]] = None) -> str:
        return self.display(attributes)

    def display_submit(
        self,
        form_identifier: str,
        text: str = "submit",
        attributes: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Render an invisible-hCaptcha submit button for a form.

        Unless ``attributes`` already carries a ``data-callback``, an inline
        script defining ``onSubmit<form id>`` is appended that submits the
        form once the challenge is solved.

        Args:
            form_identifier: HTML id of the form to submit
            text: Button label
            attributes: Extra HTML attributes for the button

        Returns:
            Button markup, followed by the callback script when generated
        """
        attrs = dict(attributes or {})
        label = html.escape(text)

        if not self.enabled:
            return f"<button{self._build_attributes(attrs)}><span>{label}</span></button>"

        javascript = ""
        if "data-callback" not in attrs:
            function_name = "onSubmit" + _CALLBACK_UNSAFE.sub("", form_identifier)
            attrs["data-callback"] = function_name
            form_id = json.dumps(form_identifier).replace("<", "\\u003c").replace(">", "\\u003e")
            javascript = (
                f"<script>function {function_name}()"
                f'{{document.getElementById({form_id}).submit();}}</script>'
            )

        attrs = self._prepare_attributes(attrs)
        button = f"<button{self._build_attributes(attrs)}><span>{label}</span></button>"
        return button + javascript

    def render_js(
        self,
        lang: Optional[str] = None,
        callback: bool = False,
        onload_class: str = "onloadCallBack",
    ) -> str:
        """Render the script tag loading the hCaptcha client library."""
        if not self.enabled:
            return ""

        src = html.escape(self.get_js_link(lang, callback, onload_class))
        return f'<script src="{src}" async defer></script>\n'

    def get_js_link(
        self,
        lang: Optional[str] = None,
        callback: bool = False,
        onload_class: str = "onloadCallBack",
    ) -> str:
        """
        Build the hCaptcha client library URL.

        Args:
            lang: Optional widget language, sent as ``hl``
            callback: If True, request explicit rendering with an onload callback
            onload_class: Name of the JS onload callback

        Returns:
            Script URL, or an empty string when disabled
        """
        if not self.enabled:
            return ""

        params: dict = {}
        if callback:
            params["render"] = "explicit"
            params["onload"] = onload_class
        if lang:
            params["hl"] = lang

        return f"{CLIENT_API}?{urlencode(params)}"

    def _prepare_attributes(self, attributes: Optional[Mapping[str, str]]) -> dict:
        attrs = dict(attributes or {})
        attrs["data-sitekey"] = self.sitekey
        attrs["class"] = f"h-captcha {attrs.get('class', '')}".strip()
        return attrs

    @staticmethod
    def _build_attributes(attributes: Mapping[str, str]) -> str:
        parts = [
            f'{html.escape(str(key))}="{html.escape(str(value))}"'
            for key, value in attributes.items()
        ]
        return " " + " ".join(parts) if parts else ""
