from fastapi import APIRouter

from schemaforge.editor.diagram import Diagram, derive_diagram
from schemaforge.models import DiagramRequest

router = APIRouter()


@router.post("/", response_model=Diagram)
def derive(request: DiagramRequest) -> Diagram:
    """
    Derive the diagram for a DBML buffer. Malformed markup yields an empty diagram.
    """
    return derive_diagram(request.dbml, request.previous_nodes)
