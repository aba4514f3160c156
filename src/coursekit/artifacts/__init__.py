"""Artifact envelope, payload models, type registry and migrations."""

from coursekit.artifacts.builtin import (
    default_migration_engine,
    default_registry,
    migrate_quiz_question_v1_0_to_v1_1,
    register_builtin_migrations,
    register_builtin_types,
)
from coursekit.artifacts.migrations import MigrationEngine, MigrationStep
from coursekit.artifacts.models import (
    Artifact,
    ArtifactEnvelope,
    ArtifactMetadata,
    Link,
    LinkRelationship,
    Project,
    ProjectCreate,
    ProjectUpdate,
    generate_id,
    is_of_type,
    utc_now,
)
from coursekit.artifacts.payloads import (
    QUESTION_BANK_TYPE,
    QUIZ_QUESTION_TYPE,
    QuestionBank,
    QuestionBankData,
    QuestionBankSettings,
    QuestionForm,
    QuizAnswer,
    QuizFeedback,
    QuizQuestion,
    QuizQuestionData,
    QuizQuestionSettings,
    is_question_bank,
    is_quiz_question,
)
from coursekit.artifacts.registry import TypeRegistry, ValidationResult, encode

__all__ = [
    "QUESTION_BANK_TYPE",
    "QUIZ_QUESTION_TYPE",
    "Artifact",
    "ArtifactEnvelope",
    "ArtifactMetadata",
    "Link",
    "LinkRelationship",
    "MigrationEngine",
    "MigrationStep",
    "Project",
    "ProjectCreate",
    "ProjectUpdate",
    "QuestionBank",
    "QuestionBankData",
    "QuestionBankSettings",
    "QuestionForm",
    "QuizAnswer",
    "QuizFeedback",
    "QuizQuestion",
    "QuizQuestionData",
    "QuizQuestionSettings",
    "TypeRegistry",
    "ValidationResult",
    "default_migration_engine",
    "default_registry",
    "encode",
    "generate_id",
    "is_of_type",
    "is_question_bank",
    "is_quiz_question",
    "migrate_quiz_question_v1_0_to_v1_1",
    "register_builtin_migrations",
    "register_builtin_types",
    "utc_now",
]
