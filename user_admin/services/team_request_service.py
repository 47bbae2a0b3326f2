"""Team request service: join requests and their Pending → Approved/Rejected lifecycle."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from user_admin.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from user_admin.db.session import unit_of_work
from user_admin.models.role import RoleName
from user_admin.models.team import Team, TeamRequest, TeamRequestStatus
from user_admin.models.user import User
from user_admin.services.audit_service import audit_service
from user_admin.services.team_service import team_service

logger = logging.getLogger(__name__)


class TeamRequestService:
    """Create, process and cancel requests to join a team.

    A request is processed at most once. Canceling deletes it outright.
    """

    @staticmethod
    def get_request(db: Session, request_id: int) -> TeamRequest:
        request = db.query(TeamRequest).filter(TeamRequest.id == request_id).first()
        if not request:
            raise NotFoundError("Request not found")
        return request

    @staticmethod
    def pending_request(db: Session, user_id: int, team_id: int) -> Optional[TeamRequest]:
        return (
            db.query(TeamRequest)
            .filter(
                TeamRequest.user_id == user_id,
                TeamRequest.team_id == team_id,
                TeamRequest.status == TeamRequestStatus.PENDING,
            )
            .first()
        )

    @staticmethod
    def create_request(db: Session, user_id: int, team_id: int, message: str = "") -> TeamRequest:
        """File a pending request for ``user_id`` to join ``team_id``.

        Raises:
            NotFoundError: User or team missing.
            ConflictError: The user already has a team, or a pending request for this team.
            InvalidStateError: Nobody manages the team, so nobody could process the request.
        """
        logger.info("Creating team request for user %s to join team %s", user_id, team_id)
        with unit_of_work(db, "creating team request"):
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundError("User not found")
            team = db.query(Team).filter(Team.id == team_id).first()
            if not team:
                raise NotFoundError("Team not found")

            if user.team_id is not None:
                logger.warning("User %s already belongs to a team", user_id)
                raise ConflictError("You already belong to a team. Please leave your current team first.")

            if TeamRequestService.pending_request(db, user_id, team_id):
                logger.warning("User %s already has a pending request for team %s", user_id, team_id)
                raise ConflictError("You already have a pending request for this team")

            if team_service.get_team_manager(db, team_id) is None:
                logger.warning("Team %s has no manager to process requests", team_id)
                raise InvalidStateError("This team has no manager to process requests")

            request = TeamRequest(
                user_id=user_id,
                team_id=team_id,
                message=message or "",
                status=TeamRequestStatus.PENDING,
                requested_at=datetime.now(timezone.utc),
            )
            db.add(request)
            audit_service.log(db, user_id, "Team Request Created", f"User: {user.username}, Team: {team.name}")
        db.refresh(request)
        logger.info("Created team request %s for user %s to join team %s", request.id, user.username, team.name)
        return request

    @staticmethod
    def requests_by_user(db: Session, user_id: int) -> List[TeamRequest]:
        return (
            db.query(TeamRequest)
            .filter(TeamRequest.user_id == user_id)
            .order_by(TeamRequest.requested_at.desc(), TeamRequest.id.desc())
            .all()
        )

    @staticmethod
    def pending_for_team(db: Session, team_id: int) -> List[TeamRequest]:
        return (
            db.query(TeamRequest)
            .filter(TeamRequest.team_id == team_id, TeamRequest.status == TeamRequestStatus.PENDING)
            .order_by(TeamRequest.requested_at.desc(), TeamRequest.id.desc())
            .all()
        )

    @staticmethod
    def mailbox(db: Session, manager_id: int) -> List[TeamRequest]:
        """Pending requests for the team the manager belongs to."""
        manager = db.query(User).filter(User.id == manager_id).first()
        if not manager or manager.team_id is None:
            raise NotFoundError("Manager not found or not assigned to a team")
        return TeamRequestService.pending_for_team(db, manager.team_id)

    @staticmethod
    def process_request(
        db: Session,
        request_id: int,
        processed_by_user_id: int,
        approve: bool,
        notes: Optional[str] = None,
    ) -> TeamRequest:
        """Approve or reject a pending request. Approval moves the requester into the team.

        Raises:
            NotFoundError: Request or processing user missing.
            ConflictError: The request is no longer pending, or on approval the
                requester has since joined a team or become a manager.
            ForbiddenError: The processor neither manages the team nor is an Admin.
        """
        logger.info("Processing team request %s by user %s", request_id, processed_by_user_id)
        with unit_of_work(db, "processing team request"):
            request = (
                db.query(TeamRequest)
                .filter(TeamRequest.id == request_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if not request:
                raise NotFoundError("Request not found")
            if request.status != TeamRequestStatus.PENDING:
                raise ConflictError("Request has already been processed")

            processor = db.query(User).filter(User.id == processed_by_user_id).first()
            if not processor:
                raise NotFoundError("Processing user not found")
            if not processor.has_role(RoleName.ADMIN) and not (
                processor.has_role(RoleName.MANAGER) and processor.team_id == request.team_id
            ):
                raise ForbiddenError("Only the manager of this team can process its requests")

            if approve:
                # Locked so a concurrent promotion or approval cannot move the requester meanwhile.
                requester = (
                    db.query(User)
                    .filter(User.id == request.user_id)
                    .with_for_update()
                    .populate_existing()
                    .first()
                )
                if requester is None:
                    raise NotFoundError("Requesting user not found")
                if requester.team_id is not None:
                    logger.warning(
                        "Cannot approve request %s: user %s already belongs to team %s",
                        request_id, requester.username, requester.team_id,
                    )
                    raise ConflictError("User already belongs to a team")
                if requester.has_role(RoleName.MANAGER):
                    raise ConflictError("Managers join teams through promotion")
                requester.team_id = request.team_id

            request.status = TeamRequestStatus.APPROVED if approve else TeamRequestStatus.REJECTED
            request.processed_at = datetime.now(timezone.utc)
            request.processed_by_user_id = processed_by_user_id
            request.processing_notes = notes

            action = "Team Request Approved" if approve else "Team Request Rejected"
            audit_service.log(db, processed_by_user_id, action, f"Request ID: {request_id}, Notes: {notes}")
        db.refresh(request)
        logger.info("Team request %s %s", request_id, "approved" if approve else "rejected")
        return request

    @staticmethod
    def cancel_request(db: Session, request_id: int, user_id: int) -> None:
        """Withdraw a pending request. Only its requester may do this."""
        logger.info("Canceling team request %s by user %s", request_id, user_id)
        with unit_of_work(db, "canceling team request"):
            request = TeamRequestService.get_request(db, request_id)
            if request.user_id != user_id:
                raise ForbiddenError("You can only cancel your own requests")
            if request.status != TeamRequestStatus.PENDING:
                raise ConflictError("Only pending requests can be canceled")

            db.delete(request)
            audit_service.log(db, user_id, "Team Request Canceled", f"Request ID: {request_id}")
        logger.info("Canceled team request %s", request_id)


team_request_service = TeamRequestService()
