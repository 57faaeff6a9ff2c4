"""Read-only review query endpoints consumed by the dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from prwarden_store.models import Finding, ReviewDetail

router = APIRouter()


def _finding_to_dict(finding: Finding) -> dict:
    return {
        "id": finding.id,
        "content": finding.content,
        "type": finding.category,
        "severity": finding.severity,
        "filePath": finding.file_path,
        "lineNumber": finding.line_number,
        "createdAt": finding.created_at,
    }


def review_to_dict(detail: ReviewDetail) -> dict:
    review, pr, repo = detail.review, detail.pull_request, detail.repository
    return {
        "id": review.id,
        "status": review.status,
        "summary": review.summary,
        "score": review.score,
        "createdAt": review.created_at,
        "updatedAt": review.updated_at,
        "pullRequest": {
            "id": pr.id,
            "number": pr.number,
            "title": pr.title,
            "githubId": pr.origin_id,
            "state": pr.state,
            "createdAt": pr.created_at,
            "updatedAt": pr.updated_at,
            "repository": {
                "id": repo.id,
                "name": repo.name,
                "fullName": repo.full_name,
                "githubId": repo.origin_id,
                "owner": repo.owner,
                "private": repo.private,
                "isActive": repo.is_active,
                "createdAt": repo.created_at,
                "updatedAt": repo.updated_at,
            },
        },
        "comments": [_finding_to_dict(f) for f in detail.findings],
    }


@router.get("")
def list_reviews(request: Request, repo: str | None = None):
    details = request.app.state.store.list_reviews(repo=repo)
    return {"reviews": [review_to_dict(d) for d in details]}


@router.get("/{review_id}")
def get_review(request: Request, review_id: int):
    detail = request.app.state.store.get_review(review_id)
    if detail is None:
        return JSONResponse(status_code=404, content={"error": "Review not found"})
    return {"review": review_to_dict(detail)}
