import asyncio
import logging
import random
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, StreamingResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from chatbot import WELCOME_MESSAGE
from config import get_settings
from database import get_db
from formatting import fixed
from ledger import TransactionType
from periods import TimeWindow, resolve_window
from schemas import (
    AccountIn,
    BudgetIn,
    BudgetStatusOut,
    CategoryIn,
    CategoryOut,
    ChatIn,
    ChatOut,
    CurrencyIn,
    ForecastOut,
    GoalContributionIn,
    GoalIn,
    GoalOut,
    InsightOut,
    TransactionIn,
    TransactionOut,
)
from services import (
    AccountService,
    AnalyticsService,
    BudgetService,
    CategoryService,
    CSVService,
    GoalService,
    TransactionFilters,
    TransactionService,
    current_time,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Insights")
templates = Jinja2Templates(directory="templates")


def format_currency(value, symbol: str = "") -> str:
    return f"{symbol}{fixed(value, 2)}"


templates.env.filters["currency"] = format_currency


def service_error(exc: ValueError) -> HTTPException:
    message = str(exc)
    status = 404 if message.endswith("not found") else 400
    return HTTPException(status_code=status, detail=message)


def window_from_request(request: Request) -> TimeWindow:
    try:
        return resolve_window(
            request.query_params.get("period"),
            request.query_params.get("start"),
            request.query_params.get("end"),
            now=current_time(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def filters_from_request(request: Request) -> TransactionFilters:
    type_param = request.query_params.get("type")
    txn_type = None
    if type_param:
        try:
            txn_type = TransactionType(type_param)
        except ValueError:
            txn_type = None
    return TransactionFilters(
        type=txn_type,
        category_id=request.query_params.get("category") or None,
        query=request.query_params.get("q") or None,
    )


@app.get("/api/currencies")
def api_currencies(db: Session = Depends(get_db)):
    return [
        {"id": c.id, "code": c.code, "symbol": c.symbol, "name": c.name}
        for c in AccountService(db).list_currencies()
    ]


@app.post("/api/currencies", status_code=201)
def api_create_currency(payload: CurrencyIn, db: Session = Depends(get_db)):
    try:
        currency = AccountService(db).create_currency(payload)
    except ValueError as exc:
        raise service_error(exc) from exc
    return {"id": currency.id, "code": currency.code, "symbol": currency.symbol}


@app.get("/api/accounts")
def api_accounts(db: Session = Depends(get_db)):
    return [
        {"id": a.id, "name": a.name, "currency_id": a.currency_id}
        for a in AccountService(db).list_accounts()
    ]


@app.post("/api/accounts", status_code=201)
def api_create_account(payload: AccountIn, db: Session = Depends(get_db)):
    try:
        account = AccountService(db).create_account(payload)
    except ValueError as exc:
        raise service_error(exc) from exc
    return {"id": account.id, "name": account.name, "currency_id": account.currency_id}


@app.get("/api/categories", response_model=list[CategoryOut])
def api_categories(db: Session = Depends(get_db)):
    return CategoryService(db).list_all()


@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def api_create_category(payload: CategoryIn, db: Session = Depends(get_db)):
    try:
        return CategoryService(db).create(payload)
    except ValueError as exc:
        raise service_error(exc) from exc


@app.get("/api/transactions")
def api_transactions(request: Request, db: Session = Depends(get_db)):
    window = window_from_request(request)
    filters = filters_from_request(request)
    page = max(int(request.query_params.get("page", "1")), 1)
    limit = min(max(int(request.query_params.get("limit", "50")), 1), 100)
    offset = (page - 1) * limit
    items = TransactionService(db).list(window, filters, limit=limit + 1, offset=offset)
    has_more = len(items) > limit
    return {
        "items": [
            TransactionOut.model_validate(t).model_dump(mode="json")
            for t in items[:limit]
        ],
        "page": page,
        "limit": limit,
        "has_more": has_more,
    }


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def api_create_transaction(payload: TransactionIn, db: Session = Depends(get_db)):
    try:
        return TransactionService(db).create(payload)
    except ValueError as exc:
        raise service_error(exc) from exc


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def api_delete_transaction(transaction_id: str, db: Session = Depends(get_db)):
    try:
        TransactionService(db).delete(transaction_id)
    except ValueError as exc:
        raise service_error(exc) from exc


@app.get("/api/transactions/export.csv")
def api_export_transactions(request: Request, db: Session = Depends(get_db)):
    window = window_from_request(request)
    filters = filters_from_request(request)
    transactions = TransactionService(db).list(window, filters)
    csv_text = CSVService(db).export(transactions)
    stamp = current_time().date().isoformat()
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="transactions_{stamp}.csv"'},
    )


@app.post("/api/transactions/import")
async def api_import_transactions(
    file: UploadFile = File(...), db: Session = Depends(get_db)
):
    raw = await file.read()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8") from exc
    created, errors = CSVService(db).import_csv(content)
    return {"created": created, "errors": errors}


@app.get("/api/budgets")
def api_budgets(db: Session = Depends(get_db)):
    return [
        {
            "id": b.id,
            "category_id": b.category_id,
            "amount": fixed(b.amount, 2),
            "period": b.period.value,
            "currency_id": b.currency_id,
        }
        for b in BudgetService(db).list()
    ]


@app.post("/api/budgets", status_code=201)
def api_upsert_budget(payload: BudgetIn, db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db).upsert(payload)
    except ValueError as exc:
        raise service_error(exc) from exc
    return {"id": budget.id, "category_id": budget.category_id}


@app.delete("/api/budgets/{budget_id}", status_code=204)
def api_delete_budget(budget_id: str, db: Session = Depends(get_db)):
    try:
        BudgetService(db).delete(budget_id)
    except ValueError as exc:
        raise service_error(exc) from exc


@app.get("/api/budgets/status", response_model=list[BudgetStatusOut])
def api_budget_status(db: Session = Depends(get_db)):
    return BudgetService(db).status()


@app.get("/api/goals")
def api_goals(db: Session = Depends(get_db)):
    service = GoalService(db)
    return [
        {
            **GoalOut.model_validate(g).model_dump(mode="json"),
            "progress": fixed(service.progress(g), 1),
        }
        for g in service.list()
    ]


@app.post("/api/goals", response_model=GoalOut, status_code=201)
def api_create_goal(payload: GoalIn, db: Session = Depends(get_db)):
    return GoalService(db).create(payload)


@app.put("/api/goals/{goal_id}", response_model=GoalOut)
def api_update_goal(goal_id: str, payload: GoalIn, db: Session = Depends(get_db)):
    try:
        return GoalService(db).update(goal_id, payload)
    except ValueError as exc:
        raise service_error(exc) from exc


@app.delete("/api/goals/{goal_id}", status_code=204)
def api_delete_goal(goal_id: str, db: Session = Depends(get_db)):
    try:
        GoalService(db).delete(goal_id)
    except ValueError as exc:
        raise service_error(exc) from exc


@app.post("/api/goals/{goal_id}/contribute", response_model=GoalOut)
def api_contribute_goal(
    goal_id: str, payload: GoalContributionIn, db: Session = Depends(get_db)
):
    try:
        return GoalService(db).contribute(goal_id, payload.amount)
    except ValueError as exc:
        raise service_error(exc) from exc


async def chat_delay() -> None:
    settings = get_settings()
    if settings.chat_delay_max_ms <= 0:
        return
    delay_ms = random.uniform(settings.chat_delay_min_ms, settings.chat_delay_max_ms)
    await asyncio.sleep(delay_ms / 1000)


@app.get("/api/chat", response_model=ChatOut)
def api_chat_welcome():
    return ChatOut(answer=WELCOME_MESSAGE)


@app.post("/api/chat", response_model=ChatOut)
async def api_chat(payload: ChatIn, db: Session = Depends(get_db)):
    answer = AnalyticsService(db).answer_query(payload.message)
    await chat_delay()
    return ChatOut(answer=answer)


@app.get("/api/insights", response_model=list[InsightOut])
def api_insights(db: Session = Depends(get_db)):
    return AnalyticsService(db).compute_insights()


@app.get("/api/forecast", response_model=ForecastOut)
def api_forecast(db: Session = Depends(get_db)):
    return ForecastOut.model_validate(AnalyticsService(db).compute_forecast())


@app.get("/reports/summary", response_class=HTMLResponse)
def report_summary(
    request: Request, limit: Optional[int] = 100, db: Session = Depends(get_db)
):
    analytics = AnalyticsService(db)
    summary = analytics.summary()
    transactions = TransactionService(db).list(
        filters=TransactionFilters(include_projected=False),
        limit=min(max(limit or 100, 1), 500),
    )
    logger.info(f"report_summary: rows={len(transactions)}")
    return templates.TemplateResponse(
        request,
        "report.html",
        {
            "summary": summary,
            "transactions": transactions,
            "generated_on": summary["generated_at"].date(),
        },
    )
