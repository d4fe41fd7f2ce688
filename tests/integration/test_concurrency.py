"""Two writers racing on the same thesis: exactly one transition wins."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from thesisflow.core.approval import (
    ConcurrentModificationError,
    PreconditionFailedError,
    ThesisWorkflowService,
)
from thesisflow.core.rbac import Actor
from thesisflow.db.base import Base
from thesisflow.db.models import Thesis, ThesisTransition

from tests.factories import create_thesis, create_user

pytestmark = pytest.mark.integration


@pytest.fixture
def session_factory(tmp_path):
    """Sessions on a shared SQLite file, each with its own connection."""
    engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def seeded(session_factory):
    with session_factory() as session:
        scholar = create_user(session, role="scholar")
        guide = create_user(session, role="guide")
        thesis = create_thesis(
            session, scholar=scholar, guide=guide,
            status="vc_rejected", current_stage="guide",
        )
        session.commit()
        return thesis.id, Actor(guide.id, "guide")


class TestConcurrentTransitions:

    def test_second_writer_gets_conflict(self, session_factory, seeded):
        thesis_id, guide = seeded
        first, second = session_factory(), session_factory()
        try:
            # both hold version 1 before either writes; the identity map is weak,
            # so the loaded rows must stay referenced
            loaded = [
                ThesisWorkflowService(first).get_thesis(thesis_id),
                ThesisWorkflowService(second).get_thesis(thesis_id),
            ]
            assert [t.version for t in loaded] == [1, 1]

            ThesisWorkflowService(first).guide_reapprove(thesis_id, guide, "vc")
            first.commit()

            with pytest.raises(ConcurrentModificationError) as exc_info:
                ThesisWorkflowService(second).guide_final_reject(thesis_id, guide)
            assert exc_info.value.state.as_dict() == {"status": "registrar_reviewed", "stage": "vc"}
        finally:
            first.close()
            second.close()

        with session_factory() as check:
            thesis = check.get(Thesis, thesis_id)
            assert (thesis.status, thesis.current_stage, thesis.version) == ("registrar_reviewed", "vc", 2)
            assert "finalRejection" not in thesis.approvals
            assert check.query(ThesisTransition).count() == 1

    def test_retry_after_conflict_sees_new_state(self, session_factory, seeded):
        thesis_id, guide = seeded
        first, second = session_factory(), session_factory()
        try:
            stale = ThesisWorkflowService(second).get_thesis(thesis_id)
            assert stale.version == 1
            ThesisWorkflowService(first).guide_final_reject(thesis_id, guide)
            first.commit()

            service = ThesisWorkflowService(second)
            with pytest.raises(ConcurrentModificationError):
                service.guide_reapprove(thesis_id, guide, "librarian")

            # no automatic retry: a second attempt is judged against the committed state
            with pytest.raises(PreconditionFailedError) as exc_info:
                service.guide_reapprove(thesis_id, guide, "librarian")
            assert exc_info.value.state.as_dict() == {"status": "rejected", "stage": "scholar"}
        finally:
            first.close()
            second.close()
