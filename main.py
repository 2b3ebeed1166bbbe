from fastapi import Depends, FastAPI, Form, HTTPException, Query
from fastapi.responses import PlainTextResponse, RedirectResponse, StreamingResponse
from fastapi.templating import Jinja2Templates
from jinja2 import Environment, FileSystemLoader
from pydantic import ValidationError
from datetime import date
from typing import List, Literal, Optional
import csv
import io
import logging
import os

from config import configure_logging, get_settings
from models import (Category, Expense, LedgerSnapshot, Participant,
                    ReportContext, ReportFilters, Workspace)
from storage import storage
from settlement import calculate_settlement
from reports import build_analytics, build_leaderboard, person_costs, trend_buckets
from utils import (balance_status, format_currency, format_signed_currency,
                   parse_amount)

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.title)
templates = Jinja2Templates(env=Environment(
    loader=FileSystemLoader(os.path.join(os.path.dirname(__file__), "templates")),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True))

templates.env.filters['format_currency'] = format_currency
templates.env.filters['format_signed_currency'] = format_signed_currency


def report_filters(exact_match: List[str] = Query(default=[]),
                   any_match: List[str] = Query(default=[]),
                   exclude: List[str] = Query(default=[]),
                   paid_by: List[str] = Query(default=[]),
                   include_categories: List[str] = Query(default=[]),
                   exclude_categories: List[str] = Query(default=[]),
                   date_from: Optional[date] = None,
                   date_to: Optional[date] = None) -> ReportFilters:
    return ReportFilters(exact_match=exact_match,
                         any_match=any_match,
                         exclude=exclude,
                         paid_by=paid_by,
                         include_categories=include_categories,
                         exclude_categories=exclude_categories,
                         date_from=date_from,
                         date_to=date_to)


def get_workspace_or_404(workspace_id: str) -> Workspace:
    workspace = storage.get_workspace(workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return workspace


def get_writable_workspace(workspace_id: str) -> Workspace:
    workspace = get_workspace_or_404(workspace_id)
    if workspace.read_only:
        raise HTTPException(status_code=403, detail="Workspace is read-only")
    return workspace


def load_snapshot_or_404(workspace_id: str,
                         filters: ReportFilters) -> LedgerSnapshot:
    snapshot = storage.load_snapshot(
        ReportContext(workspace_id=workspace_id, filters=filters))
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return snapshot


@app.get("/")
async def health_check():
    return {"status": "healthy", "title": settings.title}


@app.post("/workspace/create")
async def create_workspace(workspace_name: str = Form(...)):
    try:
        workspace = Workspace(name=workspace_name)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    storage.create_workspace(workspace)
    logger.info("Created workspace %s", workspace.id)
    return RedirectResponse(url=f"/workspace/{workspace.id}", status_code=303)


@app.get("/workspace/{workspace_id}")
async def view_workspace(workspace_id: str,
                         filters: ReportFilters = Depends(report_filters)):
    workspace = get_workspace_or_404(workspace_id)
    snapshot = load_snapshot_or_404(workspace_id, filters)

    settlement = calculate_settlement(snapshot)

    return {"workspace": workspace, "settlement": settlement}


@app.post("/workspace/{workspace_id}/participant/add")
async def add_participant(workspace_id: str,
                          participant_name: str = Form(...),
                          email: Optional[str] = Form(None)):
    workspace = get_writable_workspace(workspace_id)

    try:
        participant = Participant(name=participant_name, email=email)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    workspace.participants.append(participant)
    storage.update_workspace(workspace)

    return participant


@app.post("/workspace/{workspace_id}/category/add")
async def add_category(workspace_id: str, category_name: str = Form(...)):
    workspace = get_writable_workspace(workspace_id)

    try:
        category = Category(name=category_name)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    workspace.categories.append(category)
    storage.update_workspace(workspace)

    return category


@app.post("/workspace/{workspace_id}/expense/add")
async def add_expense(workspace_id: str,
                      title: str = Form(...),
                      amount: str = Form(...),
                      expense_date: str = Form(...),
                      payer_id: str = Form(...),
                      beneficiary_ids: List[str] = Form(...),
                      category_id: Optional[str] = Form(None)):
    workspace = get_writable_workspace(workspace_id)

    try:
        parsed_amount = parse_amount(amount)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if parsed_amount <= 0:
        raise HTTPException(status_code=400,
                            detail="Amount must be greater than 0")

    participant_ids = {p.id for p in workspace.participants}
    if payer_id not in participant_ids:
        raise HTTPException(status_code=400,
                            detail="Payer must be a workspace participant")

    for bid in beneficiary_ids:
        if bid not in participant_ids:
            raise HTTPException(
                status_code=400,
                detail="All beneficiaries must be workspace participants")

    category_id = category_id or None
    if category_id and category_id not in {c.id for c in workspace.categories}:
        raise HTTPException(status_code=400, detail="Unknown category")

    try:
        parsed_date = date.fromisoformat(expense_date)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date")

    try:
        expense = Expense(title=title,
                          amount=parsed_amount,
                          date=parsed_date,
                          payer_id=payer_id,
                          beneficiary_ids=beneficiary_ids,
                          category_id=category_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    workspace.expenses.append(expense)
    storage.update_workspace(workspace)

    return {"expense": expense, "settlement": calculate_settlement(
        storage.load_snapshot(ReportContext(workspace_id=workspace_id)))}


@app.post("/workspace/{workspace_id}/toggle-readonly")
async def toggle_readonly(workspace_id: str):
    workspace = get_workspace_or_404(workspace_id)

    workspace.read_only = not workspace.read_only
    storage.update_workspace(workspace)

    return {"read_only": workspace.read_only}


@app.get("/workspace/{workspace_id}/analytics")
async def analytics(workspace_id: str,
                    period: Literal["day", "week", "month"] = "day",
                    filters: ReportFilters = Depends(report_filters)):
    snapshot = load_snapshot_or_404(workspace_id, filters)

    summary = build_analytics(snapshot,
                              date_from=filters.date_from,
                              date_to=filters.date_to,
                              top_days=settings.top_days)

    return {"summary": summary, "trend": trend_buckets(snapshot.expenses, period)}


@app.get("/workspace/{workspace_id}/leaderboard")
async def leaderboard(workspace_id: str,
                      filters: ReportFilters = Depends(report_filters)):
    snapshot = load_snapshot_or_404(workspace_id, filters)
    return build_leaderboard(snapshot, settings.badge_categories)


@app.get("/workspace/{workspace_id}/costs")
async def costs(workspace_id: str,
                filters: ReportFilters = Depends(report_filters)):
    snapshot = load_snapshot_or_404(workspace_id, filters)
    return person_costs(snapshot.participants, snapshot.expenses)


@app.get("/workspace/{workspace_id}/export/summary",
         response_class=PlainTextResponse)
async def export_summary(workspace_id: str,
                         filters: ReportFilters = Depends(report_filters)):
    workspace = get_workspace_or_404(workspace_id)
    snapshot = load_snapshot_or_404(workspace_id, filters)

    settlement = calculate_settlement(snapshot)

    text = templates.get_template("settlement_summary.txt").render(
        workspace=workspace,
        filters=filters,
        settlement=settlement,
        currency=settings.currency)

    return PlainTextResponse(content=text)


@app.get("/workspace/{workspace_id}/export/csv")
async def export_csv(workspace_id: str,
                     filters: ReportFilters = Depends(report_filters)):
    workspace = get_workspace_or_404(workspace_id)
    snapshot = load_snapshot_or_404(workspace_id, filters)

    settlement = calculate_settlement(snapshot)
    currency = settings.currency

    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([f"{settings.title} - Workspace export"])
    writer.writerow([f"Workspace: {workspace.name}"])
    writer.writerow(
        [f"Created: {workspace.created_at.strftime('%Y-%m-%d %H:%M')}"])
    writer.writerow([])

    writer.writerow(["PARTICIPANTS"])
    writer.writerow(["Name", "Email"])
    for participant in snapshot.participants:
        writer.writerow([participant.name, participant.email or ""])
    writer.writerow([])

    writer.writerow(["EXPENSES"])
    writer.writerow(["Date", "Title", "Amount", "Payer", "Beneficiaries",
                     "Category"])

    participant_map = {p.id: p.name for p in snapshot.participants}
    category_map = {c.id: c.name for c in snapshot.categories}

    for expense in snapshot.expenses:
        beneficiaries_names = ", ".join(
            [participant_map.get(bid, bid) for bid in expense.beneficiary_ids])
        writer.writerow([
            expense.date.strftime('%Y-%m-%d'), expense.title,
            format_currency(expense.amount, currency),
            participant_map.get(expense.payer_id, expense.payer_id),
            beneficiaries_names,
            category_map.get(expense.category_id, "")
        ])
    writer.writerow([])

    writer.writerow(["BALANCES"])
    writer.writerow(["Participant", "Paid", "Owed", "Balance", "Status"])
    for balance in settlement.balances:
        writer.writerow([
            balance.participant_name,
            format_currency(balance.total_paid, currency),
            format_currency(balance.total_owed, currency),
            format_signed_currency(balance.balance, currency),
            balance_status(balance.balance)
        ])
    writer.writerow([])

    writer.writerow(["TRANSFERS"])
    writer.writerow(["From", "To", "Amount"])
    for transfer in settlement.transfers:
        writer.writerow([
            transfer.from_participant_name, transfer.to_participant_name,
            format_currency(transfer.amount, currency)
        ])

    output.seek(0)

    return StreamingResponse(
        io.BytesIO(output.getvalue().encode('utf-8-sig')),
        media_type="text/csv",
        headers={
            "Content-Disposition":
            f"attachment; filename=settlement_{workspace.name.replace(' ', '_')}.csv"
        })


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
