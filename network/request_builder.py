"""
Request assembly for URL sources.

The request is kept as a plain dict of ``httpx`` request arguments
(``method``, ``url``, ``headers`` and one of ``json``/``content``/``data``
plus ``files``) so ``urlReqBefore`` hooks can rewrite any part of it.
"""

from __future__ import annotations

import json
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlsplit

import httpx

from config import SourceExpert
from core.cache import CONDITIONAL_HEADERS, ConditionalCache
from core.context import ExecutionContext
from core.exceptions import PipelineAbort
from core.logging_config import debug_info
from core.objects import is_blank
from core.overwrite import format_obj_option
from hooks import HookGate, HookPoint

from .gateway import HttpGateway

logger = logging.getLogger(__name__)

RequestConfig = dict[str, Any]


def conditional_mode(ctx: ExecutionContext) -> Optional[str]:
    """Active change detection mode, or None when disabled for this call."""
    expert = ctx.source.expert_or_none
    if expert is None or expert.res_modified.type == "none":
        return None
    if expert.res_modified.ignore_user_call and ctx.is_user_call:
        return None
    return expert.res_modified.type


def file_name_of(url: str, response: httpx.Response) -> str:
    """File name for a downloaded upload: from the URL path, else by content type."""
    name = unquote(Path(urlsplit(url).path).name)
    if name and "." in name:
        return name
    content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
    extension = mimetypes.guess_extension(content_type) or ""
    return f"{name or 'file'}{extension}"


def request_summary(request_config: RequestConfig) -> dict[str, Any]:
    """JSON-friendly view of a request for debug logs."""
    summary = {key: value for key, value in request_config.items() if key != "files"}
    if request_config.get("files"):
        summary["files"] = {key: item[0] for key, item in request_config["files"]}
    return summary


class RequestBuilder:
    """Builds and sends the request of a URL source.

    Args:
        gateway: Client selection and downloads
        hooks: Hook gate for ``urlReqBefore``
        cache: Conditional request cache
    """

    def __init__(self, gateway: HttpGateway, hooks: HookGate, cache: ConditionalCache):
        self.gateway = gateway
        self.hooks = hooks
        self.cache = cache

    @property
    def engine(self):
        return self.gateway.engine

    @property
    def show_debug_info(self) -> bool:
        expert = self.gateway.config.expert_or_none
        return bool(expert and expert.show_debug_info)

    async def build(self, ctx: ExecutionContext) -> RequestConfig:
        """Assemble method, interpolated URL, headers and body."""
        source = ctx.source
        request_config: RequestConfig = {
            "method": source.request_method.upper(),
            "url": await self.engine.substitute(ctx, source.source_url),
            "headers": {},
        }
        expert = source.expert_or_none
        if expert is None:
            return request_config

        headers = dict(expert.request_headers)
        await format_obj_option(self.engine, ctx, headers, True)
        request_config["headers"] = headers

        mode = conditional_mode(ctx)
        if mode in CONDITIONAL_HEADERS:
            cached = await self.cache.get(mode, ctx.command)
            if cached:
                headers[CONDITIONAL_HEADERS[mode]] = cached

        if expert.request_data_type == "raw":
            await self._raw_body(ctx, expert, request_config)
        elif expert.request_data_type == "x-www-form-urlencoded":
            if expert.request_form:
                form = dict(expert.request_form)
                request_config["data"] = await format_obj_option(self.engine, ctx, form, True)
        elif expert.request_data_type == "form-data":
            await self._form_data_body(ctx, expert, request_config)
        return request_config

    async def _raw_body(self, ctx: ExecutionContext, expert: SourceExpert, request_config: RequestConfig) -> None:
        if is_blank(expert.request_raw):
            return
        if expert.request_json:
            body = json.loads(expert.request_raw)
            request_config["json"] = await format_obj_option(self.engine, ctx, body, False)
        else:
            request_config["content"] = await self.engine.substitute(ctx, expert.request_raw)

    async def _form_data_body(
        self, ctx: ExecutionContext, expert: SourceExpert, request_config: RequestConfig
    ) -> None:
        if not expert.request_form and not expert.request_form_files:
            return
        fields = dict(expert.request_form)
        request_config["data"] = await format_obj_option(self.engine, ctx, fields, True)

        files: list[tuple[str, tuple[str, bytes, Optional[str]]]] = []
        overwritten: set[str] = set()
        for name, info in ctx.option_info_map.info_map.items():
            key = info.overwrite_key or name
            if (
                name.startswith("$")
                or not info.auto_overwrite
                or not info.is_file_url
                or is_blank(str(info.value or ""))
                or key not in expert.request_form_files
                or key in overwritten
            ):
                continue
            url = str(info.value)
            response = await self.gateway.load_url(ctx, url)
            file_name = info.file_name or file_name_of(url, response)
            files.append((key, (file_name, response.content, response.headers.get("Content-Type"))))
            overwritten.add(key)

        base_dir = Path(self.gateway.config.base_dir)
        for key, relative in expert.request_form_files.items():
            if key in overwritten:
                continue
            path = base_dir / relative
            content_type = mimetypes.guess_type(path.name)[0]
            files.append((key, (path.name, path.read_bytes(), content_type)))
        request_config["files"] = files

    async def send(self, ctx: ExecutionContext) -> httpx.Response:
        """Build the request, run ``urlReqBefore`` hooks and send it.

        Raises:
            PipelineAbort: The server reported the data as unmodified (304)
            httpx.HTTPError: On transport failure or any other non-2xx status
        """
        request_config = await self.build(ctx)
        await self.hooks.run(
            ctx,
            HookPoint.URL_REQ_BEFORE,
            {"url": request_config["url"], "request_config": request_config},
        )
        debug_info(
            logger,
            self.show_debug_info,
            "cmdNetReq; %s\n%s",
            ctx.content,
            json.dumps(request_summary(request_config), indent=2, ensure_ascii=False, default=str),
        )

        client = self.gateway.get_cmd_client(ctx.source)
        response = await client.request(**request_config)

        mode = conditional_mode(ctx)
        if response.status_code == 304 and mode in CONDITIONAL_HEADERS:
            logger.debug(f"{ctx.command}: {mode} unmodified")
            raise PipelineAbort(f"{mode} unmodified", "resModified")

        debug_info(
            logger,
            self.show_debug_info,
            "cmdNetRes; %s\n%s %s\n%s",
            ctx.content,
            response.status_code,
            response.reason_phrase,
            dict(response.headers),
        )
        response.raise_for_status()
        return response
