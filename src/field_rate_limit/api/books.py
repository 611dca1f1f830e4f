from __future__ import annotations

import logging
import threading

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from field_rate_limit.api.dependency import RATE_LIMIT_RESPONSES, rate_limit
from field_rate_limit.api.limiter import limiter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1", tags=["books"])


class Book(BaseModel):
    title: str = Field(..., json_schema_extra={"example": "Jurassic Park"})
    author: str = Field(..., json_schema_extra={"example": "Michael Crichton"})


class BookBatch(BaseModel):
    books: list[Book] = Field(..., min_length=1)


_books_lock = threading.Lock()
_books: list[Book] = [
    Book(title="Harry Potter and the Chamber of Secrets", author="J.K. Rowling"),
    Book(title="Jurassic Park", author="Michael Crichton"),
]


def clear_books() -> None:
    """
    Test helper. Restores the seed catalogue.
    """
    with _books_lock:
        del _books[2:]


@router.get(
    "/books",
    response_model=list[Book],
    summary="List books",
    responses=RATE_LIMIT_RESPONSES,
    dependencies=[
        Depends(rate_limit(limiter, field_name="books", max=2, window="5s",
                           message="You are requesting books too often")),
    ],
)
async def list_books() -> list[Book]:
    with _books_lock:
        return list(_books)


@router.post(
    "/books",
    response_model=Book,
    status_code=201,
    summary="Add a book",
    description="Limited per title: two creations of the same title every 10 seconds.",
    responses=RATE_LIMIT_RESPONSES,
    dependencies=[
        Depends(rate_limit(limiter, field_name="createBook", identity_args=["title"], max=2, window="10s")),
    ],
)
async def create_book(book: Book) -> Book:
    with _books_lock:
        _books.append(book)
    logger.info("Book created title=%s", book.title)
    return book


@router.post(
    "/books/batch",
    response_model=list[Book],
    status_code=201,
    summary="Add several books",
    description="Each book in the batch counts as one call against a budget of 5 per minute.",
    responses=RATE_LIMIT_RESPONSES,
    dependencies=[
        Depends(rate_limit(limiter, field_name="createBooks", array_length_field="books", max=5, window="1m")),
    ],
)
async def create_books(batch: BookBatch) -> list[Book]:
    with _books_lock:
        _books.extend(batch.books)
    logger.info("Books created count=%s", len(batch.books))
    return batch.books
