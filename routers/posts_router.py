from typing import Optional

from fastapi import APIRouter, Depends, Form, UploadFile

from util.authoring import AuthoringWorkflow, Upload
from util.image_storage import ObjectUploadGateway
from util.posts import present_post, present_posts
from util.response import ok
from utils import (
    get_authoring_workflow,
    get_posts,
    get_session_token,
    get_settings,
    get_storage,
    get_users,
)

router = APIRouter()


async def read_upload(file: Optional[UploadFile]) -> Optional[Upload]:
    # browsers send an empty part when no file was chosen
    if file is None or not file.filename:
        return None
    return Upload(data=await file.read(), filename=file.filename)


@router.post("/post", status_code=201)
async def create_post(
    title: str = Form(...),
    summary: str = Form(...),
    content: str = Form(...),
    file: Optional[UploadFile] = None,
    token: Optional[str] = Depends(get_session_token),
    workflow: AuthoringWorkflow = Depends(get_authoring_workflow),
):
    """
    Create a post, optionally with a cover image.
    """
    post, author = await workflow.create_post(
        token, title, summary, content, await read_upload(file)
    )
    return ok(present_post(post, workflow.storage, author.username), code=201)


@router.put("/post")
async def edit_post(
    id: str = Form(...),
    title: str = Form(...),
    summary: str = Form(...),
    content: str = Form(...),
    file: Optional[UploadFile] = None,
    token: Optional[str] = Depends(get_session_token),
    workflow: AuthoringWorkflow = Depends(get_authoring_workflow),
):
    """
    Edit a post. Only its author may do so; the cover changes only when a
    new file is sent.
    """
    post, author = await workflow.edit_post(
        token, id, title, summary, content, await read_upload(file)
    )
    return ok(present_post(post, workflow.storage, author.username))


@router.get("/post")
async def list_posts(
    posts=Depends(get_posts),
    users=Depends(get_users),
    storage: ObjectUploadGateway = Depends(get_storage),
    settings=Depends(get_settings),
):
    """
    The most recent posts, newest first.
    """
    result = await posts.list_recent(settings.post_list_limit)
    return ok(await present_posts(result, storage, users))


@router.get("/post/{post_id}")
async def get_post(
    post_id: str,
    posts=Depends(get_posts),
    users=Depends(get_users),
    storage: ObjectUploadGateway = Depends(get_storage),
):
    post = await posts.find_by_id(post_id)
    (result,) = await present_posts([post], storage, users)
    return ok(result)
