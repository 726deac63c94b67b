"""MindCanvas: a mind map editor backed by a document API."""

__version__ = "1.0.0"
__app_id__ = "io.github.mindcanvas.MindCanvas"
