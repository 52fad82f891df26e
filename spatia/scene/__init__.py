"""
Spatia - Scene Module

Save and restore room arrangements.

Components:
    SceneDocument  - Versioned document with JSON and file I/O
    SceneEntry     - One serialized voice
    SceneCodec     - Voices to documents, documents to activation plans
"""

from spatia.scene.document import (
    SCENE_VERSION,
    SceneDocument,
    SceneEntry,
)

from spatia.scene.codec import (
    ActivationRequest,
    ImportIssue,
    ImportPlan,
    SceneCodec,
)

__all__ = [
    "SCENE_VERSION",
    "SceneDocument",
    "SceneEntry",
    "ActivationRequest",
    "ImportIssue",
    "ImportPlan",
    "SceneCodec",
]
