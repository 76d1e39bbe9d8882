"""Document transformer.

Per-result pipeline applied to everything an entity service returns:

    native record -> plain dict -> encode ID -> normalize identity field
                  -> populate relations -> authorize and filter fields

A single record and a collection go through the same pipeline; the shape of
the input is preserved. Anything else (e.g. a count) passes through unchanged.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from entitydb.fields import authorize_fields, filter_fields

if TYPE_CHECKING:
    from entitydb.broker.context import Context
    from entitydb.config import EntitySettings
    from entitydb.params import QueryParams
    from entitydb.populate import PopulationResolver
    from entitydb.storage import Adapter


class DocumentTransformer:
    """Transforms adapter results into response documents.

    Args:
        adapter: Storage adapter providing conversion and identity mapping.
        settings: Service settings (identity field, default allow-list).
        resolver: Population resolver for requested relations.
        encode_id: Identity encoder (identity function by default).
    """

    def __init__(
        self,
        adapter: Adapter,
        settings: EntitySettings,
        resolver: PopulationResolver,
        encode_id: Callable[[Any], Any] = lambda id: id,
    ) -> None:
        self._adapter = adapter
        self._settings = settings
        self._resolver = resolver
        self._encode_id = encode_id

    def effective_fields(self, ctx: Context | None, params: QueryParams) -> list[str] | None:
        """Authorized field list for a request."""
        fields = params.fields if ctx is not None and params.fields else self._settings.fields
        return authorize_fields(fields, self._settings.fields)

    def convert(self, doc: Any) -> dict[str, Any]:
        """Convert one native record and normalize its identity."""
        id_field = self._settings.id_field
        obj = self._adapter.entity_to_object(doc)
        obj = self._adapter.after_retrieve_transform_id(obj, id_field)
        if id_field in obj:
            obj[id_field] = self._encode_id(obj[id_field])
        return obj

    async def transform(self, ctx: Context | None, params: QueryParams, docs: Any) -> Any:
        """Run the pipeline on one record or a list of records."""
        if isinstance(docs, list):
            is_doc = False
        elif isinstance(docs, dict) or hasattr(docs, "keys"):
            is_doc = True
            docs = [docs]
        else:
            return docs

        json = [self.convert(doc) for doc in docs]

        if ctx is not None and params.populate:
            await self._resolver.populate(ctx, json, params.populate)

        fields = self.effective_fields(ctx, params)
        json = [filter_fields(item, fields) for item in json]

        return json[0] if is_doc else json
