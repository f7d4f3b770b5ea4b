"""
api/routes/v1/posts.py -- Post REST endpoints.

Routes:
  GET    /posts              -- newest first, ?page=N (public)
  GET    /posts/{post_id}    -- single post (public)
  POST   /posts              -- create; owner is the signed-in user
  PUT    /posts/{post_id}    -- update title/description; owner only
  DELETE /posts/{post_id}    -- delete; owner only

Ownership:
  Update and delete load the post, then call authorize_owner() with the
  token's user id before writing. A missing post is 404 before the ownership
  check, matching the order a client would expect.

Owner email:
  List and detail responses carry the owner's email, fetched from UserStore
  in one query per page rather than joined in SQL, since users and posts are
  separate repositories.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import MessageResponse, PostCreate, PostListResponse, PostOut, PostResponse, PostUpdate
from auth.dependencies import get_current_claims
from auth.errors import NotFound
from auth.guard import authorize_owner
from auth.models import SessionClaims
from auth.store import UserStore
from posts.models import Post
from posts.store import PostStore

router = APIRouter(prefix="/posts")


def _attach_owner_emails(user_store: UserStore, posts: list[Post]) -> list[Post]:
    emails = user_store.get_emails([p.user_id for p in posts])
    for post in posts:
        post.owner_email = emails.get(post.user_id)
    return posts


def _load_post(post_store: PostStore, post_id: int) -> Post:
    post = post_store.get_post(post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


@router.get("", response_model=PostListResponse)
def list_posts(request: Request, page: Optional[int] = Query(default=1)) -> PostListResponse:
    settings = request.app.state.settings
    post_store: PostStore = request.app.state.post_store
    posts = post_store.list_posts(page=page, per_page=settings.posts_per_page)
    _attach_owner_emails(request.app.state.user_store, posts)
    return PostListResponse(
        message="Posts fetched successfully",
        data=[PostOut.from_post(p) for p in posts],
        page=max(page or 1, 1),
        per_page=settings.posts_per_page,
        total=post_store.count_posts(),
    )


@router.get("/{post_id}", response_model=PostResponse)
def get_post(request: Request, post_id: int) -> PostResponse:
    post = _load_post(request.app.state.post_store, post_id)
    _attach_owner_emails(request.app.state.user_store, [post])
    return PostResponse(message="Post fetched successfully", data=PostOut.from_post(post))


@router.post("", response_model=PostResponse, status_code=201)
def create_post(
    request: Request,
    body: PostCreate,
    claims: SessionClaims = Depends(get_current_claims),
) -> PostResponse:
    post_store: PostStore = request.app.state.post_store
    post_id = post_store.create_post(Post(title=body.title, description=body.description, user_id=claims.user_id))
    created = _load_post(post_store, post_id)
    created.owner_email = claims.email
    return PostResponse(message="Post created successfully", data=PostOut.from_post(created))


@router.put("/{post_id}", response_model=PostResponse)
def update_post(
    request: Request,
    post_id: int,
    body: PostUpdate,
    claims: SessionClaims = Depends(get_current_claims),
) -> PostResponse:
    post_store: PostStore = request.app.state.post_store
    post = _load_post(post_store, post_id)
    authorize_owner(post, claims.user_id, action="update")

    post_store.update_post(post_id, **body.model_dump(exclude_none=True))
    updated = _load_post(post_store, post_id)
    updated.owner_email = claims.email
    return PostResponse(message="Post updated successfully", data=PostOut.from_post(updated))


@router.delete("/{post_id}", response_model=MessageResponse)
def delete_post(
    request: Request,
    post_id: int,
    claims: SessionClaims = Depends(get_current_claims),
) -> MessageResponse:
    post_store: PostStore = request.app.state.post_store
    post = _load_post(post_store, post_id)
    authorize_owner(post, claims.user_id, action="delete")

    post_store.delete_post(post_id)
    return MessageResponse(message="Post deleted successfully")
