"""Domains blueprint — /domains/*

Route Map:
  GET    /domains                 — List domains (optionally ?project=<id>)
  POST   /domains                 — Attach a domain to a project
  DELETE /domains/<id>            — Remove a domain
  POST   /domains/<id>/verify     — Run DNS verification
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from xistracloud.decorators import load_owned_project
from xistracloud.errors import NotFoundError
from xistracloud.extensions import db, limiter
from xistracloud.models.domain import Domain
from xistracloud.models.project import Project
from xistracloud.schemas import DomainCreateSchema, validate_json
from xistracloud.services import domain_service

domains_bp = Blueprint("domains", __name__, url_prefix="/domains")


def _get_domain(domain_id):
    domain = db.session.get(Domain, domain_id)
    if domain is None:
        raise NotFoundError("Domain not found")
    if not current_user.is_admin and domain.project.user_id != current_user.id:
        raise NotFoundError("Domain not found")
    return domain


@domains_bp.route("")
@login_required
def list_domains():
    query = Domain.query
    if not current_user.is_admin:
        query = query.join(Project).filter(Project.user_id == current_user.id)
    project_id = request.args.get("project")
    if project_id:
        query = query.filter(Domain.project_id == project_id)
    domains = query.order_by(Domain.created_at.desc()).all()
    return jsonify({"domains": [d.to_dict() for d in domains]})


@domains_bp.route("", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
@validate_json(DomainCreateSchema)
def create_domain(payload):
    project = load_owned_project(payload.project_id)
    domain = domain_service.create_domain(project, payload.domain, user=current_user)
    return jsonify({"success": True, "domain": domain.to_dict()}), 201


@domains_bp.route("/<domain_id>", methods=["DELETE"])
@login_required
def delete_domain(domain_id):
    domain = _get_domain(domain_id)
    snapshot = domain.to_dict()
    domain_service.delete_domain(domain, user=current_user)
    return jsonify({
        "success": True,
        "message": "Domain deleted successfully",
        "deletedDomain": snapshot,
    })


@domains_bp.route("/<domain_id>/verify", methods=["POST"])
@login_required
def verify_domain(domain_id):
    domain = _get_domain(domain_id)
    domain, message = domain_service.verify_domain(domain, user=current_user)
    data = domain.to_dict()
    data["message"] = message
    return jsonify({"success": True, "domain": data})
