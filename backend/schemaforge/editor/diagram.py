"""
Diagram Model Builder.

Turns DBML text into the node/edge graph rendered on the canvas. Node
positions survive re-derivation by table name; new tables are laid out on a
three-column grid below the lowest kept table, with row heights following the
tallest table in each row.
"""
import logging
from collections.abc import Iterable

from pydantic import BaseModel, Field

from schemaforge.core.errors import MarkupParseError
from schemaforge.editor.markup import MarkupParser, ParsedTable, parse_markup

logger = logging.getLogger(__name__)

GRID_COLUMNS = 3
COLUMN_SPACING = 300
HEADER_HEIGHT = 40
FIELD_ROW_HEIGHT = 24
ROW_GAP = 60


class Position(BaseModel):
    x: float
    y: float


class FieldRow(BaseModel):
    name: str
    type_name: str
    is_primary_key: bool = False


class TableNode(BaseModel):
    id: str = Field(description="Table name, unique within one diagram")
    fields: list[FieldRow] = Field(default_factory=list)
    position: Position


class ReferenceEdge(BaseModel):
    id: str
    source_table: str
    source_field: str
    target_table: str
    target_field: str
    label: str | None = None


class Diagram(BaseModel):
    nodes: list[TableNode] = Field(default_factory=list)
    edges: list[ReferenceEdge] = Field(default_factory=list)

    def positions(self) -> dict[str, Position]:
        return {node.id: node.position for node in self.nodes}

    def node(self, table_name: str) -> TableNode | None:
        for node in self.nodes:
            if node.id == table_name:
                return node
        return None


def nodes_from_layout(layout: dict[str, Position] | None) -> list[TableNode]:
    """Placeholder nodes carrying only positions, used to seed position reuse from a stored layout."""
    if not layout:
        return []
    return [TableNode(id=name, position=position) for name, position in layout.items()]


def table_height(table: ParsedTable) -> int:
    return HEADER_HEIGHT + len(table.fields) * FIELD_ROW_HEIGHT


def grid_positions(tables: list[ParsedTable], origin_y: float = 0) -> list[Position]:
    """Lay out newly introduced tables left to right, GRID_COLUMNS per row, starting at origin_y."""
    row_heights: list[int] = []
    for index, table in enumerate(tables):
        row = index // GRID_COLUMNS
        height = table_height(table) + ROW_GAP
        if row == len(row_heights):
            row_heights.append(height)
        else:
            row_heights[row] = max(row_heights[row], height)

    row_offsets: list[float] = []
    offset = origin_y
    for height in row_heights:
        row_offsets.append(offset)
        offset += height

    return [
        Position(
            x=(index % GRID_COLUMNS) * COLUMN_SPACING,
            y=row_offsets[index // GRID_COLUMNS],
        )
        for index in range(len(tables))
    ]


def _dedupe_tables(tables: Iterable[ParsedTable]) -> list[ParsedTable]:
    by_name: dict[str, ParsedTable] = {}
    for table in tables:
        if table.name in by_name:
            logger.debug("Duplicate table %s in markup; keeping the last definition", table.name)
            del by_name[table.name]
        by_name[table.name] = table
    return list(by_name.values())


def derive_diagram(
    markup_text: str,
    previous_nodes: Iterable[TableNode] = (),
    *,
    parser: MarkupParser = parse_markup,
) -> Diagram:
    """
    Build the diagram for `markup_text`.

    Never raises for bad markup: blank input and parse failures both give an
    empty diagram, since the text is routinely invalid while being typed.
    """
    if not markup_text or not markup_text.strip():
        return Diagram()

    try:
        database = parser(markup_text)
    except MarkupParseError as exc:
        logger.debug("Markup did not parse: %s", exc)
        return Diagram()

    if not database.schemas:
        return Diagram()
    schema = database.schemas[0]

    previous_positions = {node.id: node.position for node in previous_nodes}
    tables = _dedupe_tables(schema.tables)
    new_tables = [table for table in tables if table.name not in previous_positions]
    # New tables go below the lowest table that kept its position.
    origin_y = max(
        (
            previous_positions[table.name].y + table_height(table) + ROW_GAP
            for table in tables
            if table.name in previous_positions
        ),
        default=0,
    )
    new_positions = dict(
        zip((table.name for table in new_tables), grid_positions(new_tables, origin_y))
    )

    nodes = [
        TableNode(
            id=table.name,
            fields=[
                FieldRow(name=field.name, type_name=field.type_name, is_primary_key=field.pk)
                for field in table.fields
            ],
            position=previous_positions.get(table.name) or new_positions[table.name],
        )
        for table in tables
    ]
    node_ids = {node.id for node in nodes}

    edges: list[ReferenceEdge] = []
    for index, ref in enumerate(schema.refs):
        if len(ref.endpoints) < 2:
            continue
        # Arrow runs from the second declared endpoint to the first.
        target, source = ref.endpoints[0], ref.endpoints[1]
        if source.table_name not in node_ids or target.table_name not in node_ids:
            logger.debug(
                "Dropping reference %s -> %s: unknown table",
                source.table_name,
                target.table_name,
            )
            continue
        edges.append(
            ReferenceEdge(
                id=f"e{index}",
                source_table=source.table_name,
                source_field=",".join(source.field_names),
                target_table=target.table_name,
                target_field=",".join(target.field_names),
                label=ref.name,
            )
        )

    return Diagram(nodes=nodes, edges=edges)
