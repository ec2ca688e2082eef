import copy
from typing import ClassVar, Dict, List

import pytest

from helpers import make_index
from searchbridge.entities import Index, ProcessorSettings
from searchbridge.exceptions import ConfigError
from searchbridge.items import Item
from searchbridge.processors import (
    HtmlFilter,
    IgnoreCase,
    NodeAccess,
    Pipeline,
    Processor,
    RunContext,
    Stage,
    StopWords,
    Tokenizer,
    create_processor,
    disable_processor,
    enable_processor,
)
from searchbridge.query import Query, ResultSet


class Recorder(Processor):
    """Appends its id to a shared log in every hook it runs."""

    id: ClassVar[str] = "recorder"
    stages = frozenset({Stage.INDEX, Stage.PREPROCESS_QUERY, Stage.POSTPROCESS_RESULTS})

    def __init__(self, name: str, log: List[str], *, weight: int = 0, stages=None) -> None:
        super().__init__(weight=weight)
        self.name = name
        self.log = log
        if stages is not None:
            self.stages = frozenset(stages)

    def sort_key(self):
        return (self.weight, self.name)

    def preprocess_index_items(self, items: Dict[str, Item], ctx: RunContext) -> None:
        self.log.append(f"index:{self.name}")

    def preprocess_search_query(self, query: Query, ctx: RunContext) -> None:
        self.log.append(f"query:{self.name}")

    def postprocess_search_results(self, results: ResultSet, query: Query, ctx: RunContext) -> None:
        self.log.append(f"post:{self.name}")


class DropOdd(Processor):
    id: ClassVar[str] = "drop_odd"
    stages = frozenset({Stage.INDEX})

    def preprocess_index_items(self, items: Dict[str, Item], ctx: RunContext) -> None:
        for item_id in [i for i in items if int(i) % 2]:
            del items[item_id]


@pytest.fixture
def index() -> Index:
    index = make_index("i1")
    enable_processor(index, IgnoreCase.id)
    enable_processor(index, HtmlFilter.id)
    enable_processor(index, Tokenizer.id)
    enable_processor(index, StopWords.id, options={"stopwords": "the a"})
    return index


def test_processors_ordered_by_weight_then_id() -> None:
    log: List[str] = []
    pipeline = Pipeline(
        [Recorder("c", log, weight=5), Recorder("b", log, weight=-1), Recorder("a", log, weight=5)]
    )
    ctx = pipeline.new_context(make_index("i1"))
    query = Query(index=ctx.index, keys="x")

    pipeline.preprocess_index_items(ctx.index, [Item("1")], ctx)
    pipeline.preprocess_search_query(query, ctx)
    pipeline.postprocess_search_results(ResultSet(), query, ctx)

    assert log == [
        "index:b", "index:a", "index:c",
        "query:b", "query:a", "query:c",
        "post:b", "post:a", "post:c",
    ]


def test_only_declared_hooks_are_invoked() -> None:
    log: List[str] = []
    pipeline = Pipeline([Recorder("q", log, stages={Stage.PREPROCESS_QUERY})])
    index = make_index("i1")
    ctx = pipeline.new_context(index)

    pipeline.preprocess_index_items(index, [Item("1")], ctx)
    pipeline.postprocess_search_results(ResultSet(), Query(index=index), ctx)

    assert log == []


def test_removed_items_skip_later_processors() -> None:
    log: List[str] = []
    seen: List[List[str]] = []

    class Spy(Recorder):
        def preprocess_index_items(self, items, ctx):
            seen.append(sorted(items))

    pipeline = Pipeline([DropOdd(weight=0), Spy("spy", log, weight=1)])
    index = make_index("i1")

    out = pipeline.preprocess_index_items(index, [Item(str(i)) for i in range(1, 5)])

    assert sorted(out) == ["2", "4"]
    assert seen == [["2", "4"]]


def test_default_weights_give_expected_order(index: Index) -> None:
    pipeline = Pipeline.from_index(index)
    assert [p.id for p in pipeline.processors] == [
        "search_api_ignorecase",
        "search_api_html_filter",
        "search_api_tokenizer",
        "search_api_stopwords",
    ]


def test_full_index_stage(index: Index) -> None:
    pipeline = Pipeline.from_index(index)
    item = Item("1", {"title": "The <b>Quick</b>-Fox", "body": "<p>a dog's life</p>", "type": "Article"})

    out = pipeline.preprocess_index_items(index, [item])

    assert out["1"].fields["title"] == ["quick", "fox"]
    assert out["1"].fields["body"] == ["dogs", "life"]
    assert out["1"].fields["type"] == "Article"


def test_query_stage_mirrors_index_stage(index: Index) -> None:
    pipeline = Pipeline.from_index(index)
    indexed = pipeline.preprocess_index_items(index, [Item("1", {"body": "the cat and a dog"})])
    ctx = pipeline.new_context(index)
    query = Query(index=index, keys="The cat-and a DOG")

    pipeline.preprocess_search_query(query, ctx)
    results = ResultSet()
    pipeline.postprocess_search_results(results, query, ctx)

    assert indexed["1"].fields["body"] == ["cat", "and", "dog"]
    assert query.keys == "cat and dog"
    assert results.ignored == ["the", "a"]


def test_pipeline_is_deterministic(index: Index) -> None:
    pipeline = Pipeline.from_index(index)
    item = Item("1", {"title": "Hello, World", "body": "the <i>a</i> b c"})

    first = pipeline.preprocess_index_items(index, [copy.deepcopy(item)])
    second = pipeline.preprocess_index_items(index, [copy.deepcopy(item)])

    assert repr(first["1"]) == repr(second["1"])


def test_unsupported_processors_are_dropped() -> None:
    index = make_index("files", datasource="file")
    index.processors[NodeAccess.id] = ProcessorSettings()

    pipeline = Pipeline.from_index(index)

    assert pipeline.processors == []


def test_unknown_processor_is_a_config_error() -> None:
    with pytest.raises(ConfigError):
        create_processor("nope")


def test_disable_processor(index: Index) -> None:
    disable_processor(index, StopWords.id)
    assert StopWords.id not in index.processors
    assert all(p.id != StopWords.id for p in Pipeline.from_index(index).processors)


def test_weight_override(index: Index) -> None:
    enable_processor(index, StopWords.id, options={"stopwords": "the"}, weight=-5)
    assert Pipeline.from_index(index).processors[0].id == StopWords.id


def test_query_carries_only_pipeline_inputs() -> None:
    query = Query(index=make_index("i1"), keys="x")
    assert not hasattr(query, "options")
