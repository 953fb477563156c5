"""
AWS CLI storage - transfer capability that shells out to ``aws s3``.

Each call runs ``aws`` as a child process; a cancelled or timed out call
kills the child so no copy keeps running after its unit is settled.
"""
from typing import List, Optional, Sequence, Tuple
import asyncio
import json
import logging
import os

from ..errors import CommandError

logger = logging.getLogger(__name__)

S3_SCHEME = "s3://"
DEFAULT_EXISTS_TIMEOUT = 10.0


def split_s3_uri(uri: str) -> Tuple[str, str]:
    """Split ``s3://bucket/key`` into (bucket, key)."""
    if not uri.startswith(S3_SCHEME):
        raise ValueError(f"not an S3 URI: {uri}")
    bucket, _, key = uri[len(S3_SCHEME):].partition("/")
    if not bucket:
        raise ValueError(f"missing bucket in S3 URI: {uri}")
    return bucket, key


class AwsCliStorage:
    """
    Storage client backed by the AWS CLI.

    Files use ``aws s3 cp``; directories add ``--recursive``. Existence checks
    use ``s3api head-object`` for objects and ``s3api list-objects`` for
    ``/``-terminated prefixes.
    """

    def __init__(
        self,
        aws_command: str = "aws",
        extra_args: Sequence[str] = (),
        exists_timeout: float = DEFAULT_EXISTS_TIMEOUT,
        env: Optional[dict] = None,
    ):
        self._aws = aws_command
        self._extra_args = list(extra_args)
        self._exists_timeout = exists_timeout
        self._env = env

    async def transfer(self, source: str, dest: str) -> None:
        recursive = os.path.isdir(source)
        args = [self._aws, "s3", "cp", source, dest.rstrip("/") if recursive else dest]
        if recursive:
            args.append("--recursive")
        args.extend(self._extra_args)
        await self._run(args)

    async def exists(self, dest: str) -> bool:
        bucket, key = split_s3_uri(dest)
        if not key or key.endswith("/"):
            return await self._prefix_exists(bucket, key)
        try:
            await self._run(
                [self._aws, "s3api", "head-object", "--bucket", bucket, "--key", key],
                timeout=self._exists_timeout,
            )
        except (CommandError, asyncio.TimeoutError) as e:
            logger.debug("head-object %s: %s", dest, e)
            return False
        return True

    async def _prefix_exists(self, bucket: str, prefix: str) -> bool:
        args = [self._aws, "s3api", "list-objects", "--bucket", bucket,
                "--prefix", prefix, "--max-items", "1", "--output", "json"]
        try:
            stdout = await self._run(args, timeout=self._exists_timeout)
        except (CommandError, asyncio.TimeoutError) as e:
            logger.debug("list-objects s3://%s/%s: %s", bucket, prefix, e)
            return False

        if not stdout.strip():
            return False
        try:
            listing = json.loads(stdout)
        except ValueError:
            return True
        return bool(listing and listing.get("Contents"))

    async def _run(self, args: List[str], timeout: Optional[float] = None) -> str:
        logger.debug("Executing command: %s", " ".join(args))
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self._env,
        )
        try:
            if timeout is None:
                stdout, stderr = await proc.communicate()
            else:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            if proc.returncode is None:
                logger.debug("Killing command: %s", " ".join(args))
                proc.kill()
            raise

        if proc.returncode != 0:
            raise CommandError(args, proc.returncode, (stderr or b"").decode(errors="replace"))
        return (stdout or b"").decode(errors="replace")
